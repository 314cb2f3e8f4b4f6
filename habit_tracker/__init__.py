"""Application package for the habit tracker backend.

This package exposes the service, repository and model modules used by
the FastAPI application. Use `habit_tracker.main.create_app` to build an
application instance bound to its own database engine.
"""
