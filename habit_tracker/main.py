"""FastAPI application factory and HTTP controllers.

This module defines the HTTP endpoints of the habit tracker backend.
Controllers are intentionally thin: they accept requests, delegate to
`HabitService`, and return JSON responses.

Endpoints implemented:
- POST /habits
- GET /habits
- GET /habits/{habit_id}
- POST /habits/{habit_id}/mark
- PUT /habits/{habit_id}  (and the legacy PUT /habits?id=...)
- DELETE /habits/{habit_id}
- GET /health
"""

from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, FastAPI, Depends, HTTPException, Path, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlmodel import Session
import json
import logging
import time
import uuid
from .config import Settings
from .database import make_engine, create_db_and_tables, get_session, ping
from .repositories import StoreError
from .schemas import DeletedOut, HabitIn, HabitOut, HabitUpdatedOut, HabitWithMarksOut, MarkOut
from . import services

logger = logging.getLogger("habit_tracker.api")

router = APIRouter()

# largest id a signed 64-bit INTEGER column can hold
MAX_ID = 2**63 - 1


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail='habit not found')


@router.post('/habits', status_code=201, response_model=HabitOut)
def create_habit(payload: HabitIn, db: Session = Depends(get_session)):
    """Create a habit from `{name, notes?}`.

    Returns the stored habit with its id and creation timestamp. Mark
    fields are not included on create.
    """
    try:
        return services.HabitService(db).create(payload.name, payload.notes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get('/habits', response_model=List[HabitWithMarksOut])
def list_habits(db: Session = Depends(get_session)):
    """List every habit, ordered by id, with its completion dates."""
    return services.HabitService(db).list_all()


@router.get('/habits/{habit_id}', response_model=HabitWithMarksOut)
def get_habit(habit_id: int = Path(gt=0, le=MAX_ID), db: Session = Depends(get_session)):
    """Return one habit with `done_count` and ascending `done_dates`."""
    try:
        return services.HabitService(db).get(habit_id)
    except services.HabitNotFound:
        raise _not_found()


@router.post('/habits/{habit_id}/mark', response_model=MarkOut)
def mark_today(response: Response, habit_id: int = Path(gt=0, le=MAX_ID), db: Session = Depends(get_session)):
    """Mark the habit as done for the server's current day.

    Responds 201 the first time in a day and 200 with status
    `already marked` on any repeat.
    """
    try:
        result = services.HabitService(db).mark_today(habit_id)
    except services.HabitNotFound:
        raise _not_found()
    response.status_code = 201 if result['status'] == services.STATUS_MARKED else 200
    return result


def _update(habit_id: int, payload: HabitIn, db: Session):
    try:
        return services.HabitService(db).update(habit_id, payload.name, payload.notes)
    except services.HabitNotFound:
        raise _not_found()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put('/habits/{habit_id}', response_model=HabitUpdatedOut)
def update_habit(payload: HabitIn, habit_id: int = Path(gt=0, le=MAX_ID), db: Session = Depends(get_session)):
    """Overwrite a habit's name and notes."""
    return _update(habit_id, payload, db)


@router.put('/habits', response_model=HabitUpdatedOut, deprecated=True)
def update_habit_by_query(
    payload: HabitIn,
    id: Optional[int] = Query(default=None, gt=0, le=MAX_ID),
    db: Session = Depends(get_session),
):
    """Legacy form of update taking the habit id as `?id=`.

    Prefer `PUT /habits/{habit_id}`.
    """
    if id is None:
        raise HTTPException(status_code=400, detail='invalid habit id')
    return _update(id, payload, db)


@router.delete('/habits/{habit_id}', response_model=DeletedOut)
def delete_habit(habit_id: int = Path(gt=0, le=MAX_ID), db: Session = Depends(get_session)):
    """Delete a habit together with all of its marks."""
    try:
        return services.HabitService(db).delete(habit_id)
    except services.HabitNotFound:
        raise _not_found()


@router.get('/health')
def health(request: Request):
    """Lightweight health check that also pings the database."""
    if not ping(request.app.state.engine):
        return JSONResponse(status_code=503, content={'status': 'unavailable'})
    return {'status': 'ok'}


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = err.get('loc', ())
        field = loc[-1] if loc else 'request'
        if field == 'habit_id' or (field == 'id' and 'query' in loc):
            return 'invalid habit id'
        if field == 'name':
            return 'name is required'
        parts.append(f"{field}: {err.get('msg')}")
    return '; '.join(parts) or 'invalid request'


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={'detail': _validation_message(exc)})


async def store_exception_handler(request: Request, exc: StoreError):
    logger.error(
        "store_error %s",
        json.dumps(
            {
                "request_id": getattr(request.state, "request_id", ""),
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            ensure_ascii=True,
        ),
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={'detail': 'storage error'})


async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info(
        "request_done %s",
        json.dumps(
            {
                "request_id": req_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
                "client": request.client.host if request.client else "unknown",
            },
            ensure_ascii=True,
        ),
    )
    return response


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build an application bound to its own database engine.

    The engine is created and the schema ensured before the app is
    returned, so a database that cannot be opened or migrated raises here
    and the process never starts serving.
    """
    settings = settings or Settings()
    if not logging.getLogger().handlers:
        logging.basicConfig(level=settings.LOG_LEVEL)

    engine = make_engine(settings.DATABASE_URL, echo=settings.DB_ECHO)
    try:
        create_db_and_tables(engine)
    except Exception:
        logger.exception("database initialisation failed for %s", engine.url.render_as_string(hide_password=True))
        engine.dispose()
        raise

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        engine.dispose()

    app = FastAPI(title="Habit Tracker API", lifespan=lifespan)
    app.state.engine = engine
    app.state.settings = settings

    # Wide-open CORS keeps local browser frontends working without extra config in dev.
    if settings.ALLOW_DEV_CORS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.middleware("http")(request_context_middleware)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StoreError, store_exception_handler)
    app.include_router(router)
    return app
