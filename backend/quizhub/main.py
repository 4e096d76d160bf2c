"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the quiz backend. Controllers
are intentionally thin: they apply the role gates, accept validated
payloads, delegate to services, and return JSON responses. The store,
session store and password hasher are created by `create_app` and live
on `app.state`.

Endpoints implemented:
- POST /api/register, POST /api/login, POST /api/logout, GET /api/me
- GET /api/admin/users, PATCH /api/admin/users/{id}/role
- GET/POST /api/subjects, GET /api/subjects/{id}, GET /api/teacher/subjects
- GET/POST /api/subjects/{id}/topics, GET/PATCH /api/topics/{id}
- GET/POST /api/topics/{id}/questions
- GET/POST /api/topics/{id}/progress, GET /api/topics/{id}/progress/history
- POST /api/topics/{id}/submit
- GET /health
"""

import json
import logging
import time
import uuid
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware

from . import schemas, services
from .auth import (
    GateContext,
    get_settings,
    get_storage,
    require_admin,
    require_authenticated,
    require_teacher,
    session_token,
)
from .config import Settings, settings
from .errors import AuthenticationError, register_error_handlers
from .security import PasswordHasher
from .seed import seed_demo_data
from .sessions import SessionStore
from .storage import MemoryStorage

logger = logging.getLogger("quizhub.api")
router = APIRouter()


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
    if request.url.path.startswith("/api"):
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


def get_auth_service(request: Request) -> services.AuthService:
    state = request.app.state
    return services.AuthService(state.storage, state.hasher, state.sessions)


def _set_session_cookie(response: Response, request: Request, token: str) -> None:
    cfg = get_settings(request)
    response.set_cookie(
        cfg.SESSION_COOKIE_NAME,
        token,
        max_age=request.app.state.sessions.max_age_seconds,
        httponly=True,
        samesite="lax",
        secure=cfg.SESSION_COOKIE_SECURE,
    )


# Auth

@router.post('/api/register', response_model=schemas.UserOut, status_code=status.HTTP_201_CREATED)
def register(
    payload: schemas.RegisterIn,
    request: Request,
    response: Response,
    auth: services.AuthService = Depends(get_auth_service),
):
    """Create an account and log it in straight away."""
    user = auth.register(payload)
    _set_session_cookie(response, request, auth.start_session(user))
    return user


@router.post('/api/login', response_model=schemas.UserOut)
def login(
    payload: schemas.LoginIn,
    request: Request,
    response: Response,
    auth: services.AuthService = Depends(get_auth_service),
):
    """Check credentials and start a fresh session."""
    user = auth.authenticate(payload.username, payload.password)
    if not user:
        raise AuthenticationError("Invalid credentials")
    _set_session_cookie(response, request, auth.start_session(user))
    return user


@router.post('/api/logout', response_model=schemas.MessageOut)
def logout(request: Request, response: Response, auth: services.AuthService = Depends(get_auth_service)):
    auth.logout(session_token(request))
    response.delete_cookie(get_settings(request).SESSION_COOKIE_NAME)
    return {'message': 'Logged out'}


@router.get('/api/me', response_model=schemas.UserOut)
def me(ctx: GateContext = Depends(require_authenticated), auth: services.AuthService = Depends(get_auth_service)):
    return auth.current_user(ctx.user_id)


# Admin

@router.get('/api/admin/users', response_model=List[schemas.UserOut])
def list_users(ctx: GateContext = Depends(require_admin), storage: MemoryStorage = Depends(get_storage)):
    return services.AdminService(storage).list_users()


@router.patch('/api/admin/users/{user_id}/role', response_model=schemas.UserOut)
def update_user_role(
    user_id: int,
    payload: schemas.RoleUpdateIn,
    ctx: GateContext = Depends(require_admin),
    storage: MemoryStorage = Depends(get_storage),
):
    """Switch a user between the student and teacher roles."""
    return services.AdminService(storage).change_role(ctx.user_id, user_id, payload.role)


# Subjects

@router.get('/api/subjects', response_model=List[schemas.SubjectOut])
def list_subjects(storage: MemoryStorage = Depends(get_storage)):
    return services.CatalogService(storage).list_subjects()


@router.get('/api/subjects/{subject_id}', response_model=schemas.SubjectOut)
def get_subject(subject_id: int, storage: MemoryStorage = Depends(get_storage)):
    return services.CatalogService(storage).get_subject(subject_id)


@router.post('/api/subjects', response_model=schemas.SubjectOut, status_code=status.HTTP_201_CREATED)
def create_subject(
    payload: schemas.SubjectIn,
    ctx: GateContext = Depends(require_teacher),
    storage: MemoryStorage = Depends(get_storage),
):
    """Create a subject owned by the calling teacher."""
    return services.CatalogService(storage).create_subject(ctx.user_id, payload)


@router.get('/api/teacher/subjects', response_model=List[schemas.SubjectOut])
def teacher_subjects(ctx: GateContext = Depends(require_teacher), storage: MemoryStorage = Depends(get_storage)):
    return services.CatalogService(storage).teacher_subjects(ctx.user_id)


# Topics

@router.get('/api/subjects/{subject_id}/topics', response_model=List[schemas.TopicOut])
def list_topics(subject_id: int, storage: MemoryStorage = Depends(get_storage)):
    return services.CatalogService(storage).list_topics(subject_id)


@router.post('/api/subjects/{subject_id}/topics', response_model=schemas.TopicOut, status_code=status.HTTP_201_CREATED)
def create_topic(
    subject_id: int,
    payload: schemas.TopicIn,
    ctx: GateContext = Depends(require_teacher),
    storage: MemoryStorage = Depends(get_storage),
):
    return services.CatalogService(storage).create_topic(ctx.user_id, subject_id, payload)


@router.get('/api/topics/{topic_id}', response_model=schemas.TopicOut)
def get_topic(topic_id: int, storage: MemoryStorage = Depends(get_storage)):
    return services.CatalogService(storage).get_topic(topic_id)


@router.patch('/api/topics/{topic_id}', response_model=schemas.TopicOut)
def update_topic(
    topic_id: int,
    payload: schemas.TopicPatchIn,
    ctx: GateContext = Depends(require_teacher),
    storage: MemoryStorage = Depends(get_storage),
):
    """Change a topic's name, content or subject."""
    return services.CatalogService(storage).update_topic(ctx.user_id, topic_id, payload)


# Questions

@router.get('/api/topics/{topic_id}/questions', response_model=List[schemas.QuestionOut])
def list_questions(topic_id: int, storage: MemoryStorage = Depends(get_storage)):
    return services.CatalogService(storage).list_questions(topic_id)


@router.post('/api/topics/{topic_id}/questions', response_model=schemas.QuestionOut, status_code=status.HTTP_201_CREATED)
def create_question(
    topic_id: int,
    payload: schemas.QuestionIn,
    ctx: GateContext = Depends(require_teacher),
    storage: MemoryStorage = Depends(get_storage),
):
    return services.CatalogService(storage).create_question(topic_id, payload)


# Progress

@router.get('/api/topics/{topic_id}/progress', response_model=Union[schemas.ProgressOut, schemas.NoProgressOut])
def get_progress(
    topic_id: int,
    ctx: GateContext = Depends(require_authenticated),
    storage: MemoryStorage = Depends(get_storage),
):
    """Latest progress of the caller on a topic, or a not-started placeholder."""
    progress = services.ProgressService(storage).current(ctx.user_id, topic_id)
    if progress is None:
        return schemas.NoProgressOut()
    return schemas.ProgressOut.model_validate(progress)


@router.get('/api/topics/{topic_id}/progress/history', response_model=List[schemas.ProgressOut])
def progress_history(
    topic_id: int,
    ctx: GateContext = Depends(require_authenticated),
    storage: MemoryStorage = Depends(get_storage),
):
    return services.ProgressService(storage).history(ctx.user_id, topic_id)


@router.post('/api/topics/{topic_id}/progress', response_model=schemas.ProgressOut)
def record_progress(
    topic_id: int,
    payload: schemas.ProgressIn,
    ctx: GateContext = Depends(require_authenticated),
    storage: MemoryStorage = Depends(get_storage),
):
    """Append a progress record; earlier attempts are kept."""
    return services.ProgressService(storage).record(ctx.user_id, topic_id, payload.score, payload.completed)


@router.post('/api/topics/{topic_id}/submit', response_model=schemas.GradeOut)
def submit_quiz(
    topic_id: int,
    submission: schemas.QuizSubmission,
    ctx: GateContext = Depends(require_authenticated),
    storage: MemoryStorage = Depends(get_storage),
):
    """Grade selected answers against the topic's questions and record the score."""
    return services.GradingService(storage).grade(ctx.user_id, topic_id, submission.answers)


@router.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}


def create_app(app_settings: Optional[Settings] = None, storage: Optional[MemoryStorage] = None) -> FastAPI:
    """Build the application with its own store and session store.

    A caller-provided `storage` is used as is; otherwise a new store is
    created and, when enabled, filled with the demo catalogue.
    """
    cfg = app_settings or settings
    if not logging.getLogger().handlers:
        logging.basicConfig(level=cfg.LOG_LEVEL)

    app = FastAPI(title="QuizHub API")
    app.state.settings = cfg
    app.state.hasher = PasswordHasher(cfg.PASSWORD_SCHEME)
    app.state.sessions = SessionStore(cfg.SESSION_SECRET, ttl_hours=cfg.SESSION_TTL_HOURS)
    if storage is None:
        storage = MemoryStorage()
        if cfg.SEED_DEMO_DATA:
            seed_demo_data(storage, app.state.hasher)
    app.state.storage = storage

    register_error_handlers(app)
    # Wide-open CORS keeps local frontends on other ports working without extra config in dev.
    if cfg.ALLOW_DEV_CORS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.middleware("http")(request_context_middleware)
    app.include_router(router)
    return app


app = create_app()
