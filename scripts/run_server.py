"""CLI script to start the habit tracker API.
Usage: python scripts/run_server.py [--host HOST] [--port PORT] [--reload]
"""
import sys
import pathlib
# Ensure the repository root is on sys.path so `habit_tracker` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from habit_tracker.__main__ import main

if __name__ == '__main__':
    main()
