import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Awaitable, Callable, Generator, List, Optional, Type, TypeVar

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import APIKeyHeader
from fastapi.security.utils import get_authorization_scheme_param
from pydantic import BaseModel, ConfigDict
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.config import Settings, configure_logging
from backend.database import init_db, make_engine, make_session_factory
from backend.errors import AuthError, NotFoundError, ValidationError, register_exception_handlers
from backend.security import PasswordHasher, TokenService
from backend.stores import CredentialStore, TaskStore

logger = logging.getLogger(__name__)


# -----------------------------
# Pydantic-схемы
# -----------------------------
class Credentials(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class TaskCreate(BaseModel):
    text: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None


class StatusUpdate(BaseModel):
    status: Optional[str] = None


class PriorityUpdate(BaseModel):
    priority: Optional[str] = None


class TaskOut(BaseModel):
    id: str
    text: str
    status: str
    priority: str
    owner_id: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class Message(BaseModel):
    message: str


class Token(BaseModel):
    token: str


BodyT = TypeVar("BodyT", bound=BaseModel)


class AuthContext(BaseModel):
    user_id: str


# -----------------------------
# Зависимости
# -----------------------------
authorization_header = APIKeyHeader(name="Authorization", auto_error=False)
router = APIRouter()


def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_credential_store(db: Session = Depends(get_db)) -> CredentialStore:
    return CredentialStore(db)


def get_task_store(db: Session = Depends(get_db)) -> TaskStore:
    return TaskStore(db)


def get_hasher(request: Request) -> PasswordHasher:
    return request.app.state.hasher


def get_tokens(request: Request) -> TokenService:
    return request.app.state.tokens


def auth_gate(
    authorization: Optional[str] = Depends(authorization_header),
    tokens: TokenService = Depends(get_tokens),
) -> AuthContext:
    """Проверяет Bearer-токен; без успешной проверки защищённый обработчик не вызывается."""
    # префикс "Bearer" снимается, любое другое непустое значение считается токеном
    raw = (authorization or "").strip()
    scheme, param = get_authorization_scheme_param(raw)
    token = param.strip() if scheme.lower() == "bearer" else raw
    if not token:
        raise AuthError("No token provided")
    return AuthContext(user_id=tokens.verify(token))


def json_body(model: Type[BodyT]) -> Callable[..., Awaitable[BodyT]]:
    """Тело запроса разбирается только после auth_gate: без токена всегда 401, а не 400."""

    async def parse(request: Request, ctx: AuthContext = Depends(auth_gate)) -> BodyT:
        try:
            return model.model_validate(await request.json())
        except ValueError:
            # сюда попадают и битый JSON, и pydantic.ValidationError
            raise ValidationError("Invalid request body")

    return parse


def _require(value: Optional[str], message: str) -> str:
    if not value:
        raise ValidationError(message)
    return value


# -----------------------------
# Эндпоинты аутентификации
# -----------------------------
@router.post("/register", response_model=Message)
def register(
    body: Credentials,
    users: CredentialStore = Depends(get_credential_store),
    hasher: PasswordHasher = Depends(get_hasher),
):
    username = _require(body.username, "Username and password are required")
    password = _require(body.password, "Username and password are required")
    user = users.create_user(username, hasher.hash(password))
    logger.info("Registered user %s (%s)", user.username, user.id)
    return {"message": "User registered successfully"}


@router.post("/login", response_model=Token)
def login(
    body: Credentials,
    users: CredentialStore = Depends(get_credential_store),
    hasher: PasswordHasher = Depends(get_hasher),
    tokens: TokenService = Depends(get_tokens),
):
    username = _require(body.username, "Username and password are required")
    password = _require(body.password, "Username and password are required")
    user = users.find_by_username(username)
    if user is None:
        hasher.dummy_verify()
    if user is None or not hasher.verify(password, user.password_hash):
        logger.info("Failed login for %s", username)
        raise AuthError("Invalid credentials")
    return {"token": tokens.issue(user.id)}


# -----------------------------
# CRUD для задач
# -----------------------------
@router.get("/tasks", response_model=List[TaskOut])
def list_tasks(ctx: AuthContext = Depends(auth_gate), tasks: TaskStore = Depends(get_task_store)):
    return tasks.list_by_owner(ctx.user_id)


@router.post("/tasks", response_model=TaskOut)
def create_task(
    body: TaskCreate = Depends(json_body(TaskCreate)),
    ctx: AuthContext = Depends(auth_gate),
    tasks: TaskStore = Depends(get_task_store),
):
    task_text = _require(body.text, "Task text is required")
    return tasks.create(ctx.user_id, task_text, status=body.status, priority=body.priority)


@router.get("/tasks/{task_id}", response_model=TaskOut)
def get_task(task_id: str, ctx: AuthContext = Depends(auth_gate), tasks: TaskStore = Depends(get_task_store)):
    task = tasks.get_owned(task_id, ctx.user_id)
    if task is None:
        raise NotFoundError("Task not found")
    return task


@router.delete("/tasks/{task_id}", response_model=Message)
def delete_task(task_id: str, ctx: AuthContext = Depends(auth_gate), tasks: TaskStore = Depends(get_task_store)):
    if tasks.delete_one_owned(task_id, ctx.user_id) is None:
        raise NotFoundError("Task not found")
    return {"message": "Task deleted successfully"}


@router.patch("/tasks/{task_id}/status", response_model=TaskOut)
def update_status(
    task_id: str,
    body: StatusUpdate = Depends(json_body(StatusUpdate)),
    ctx: AuthContext = Depends(auth_gate),
    tasks: TaskStore = Depends(get_task_store),
):
    value = _require(body.status, "Status is required")
    task = tasks.update_field_owned(task_id, ctx.user_id, "status", value)
    if task is None:
        raise NotFoundError("Task not found")
    return task


@router.patch("/tasks/{task_id}/priority", response_model=TaskOut)
def update_priority(
    task_id: str,
    body: PriorityUpdate = Depends(json_body(PriorityUpdate)),
    ctx: AuthContext = Depends(auth_gate),
    tasks: TaskStore = Depends(get_task_store),
):
    value = _require(body.priority, "Priority is required")
    task = tasks.update_field_owned(task_id, ctx.user_id, "priority", value)
    if task is None:
        raise NotFoundError("Task not found")
    return task


# -----------------------------
# Инициализация приложения
# -----------------------------
def connect_database(engine) -> bool:
    """Проверяет соединение и создаёт таблицы. Ошибка только логируется."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        init_db(engine)
    except SQLAlchemyError:
        logger.exception("Database connection failed")
        return False
    logger.info("Database connected")
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    # сервер продолжает принимать запросы даже без БД
    connect_database(app.state.engine)
    yield
    app.state.engine.dispose()


def create_app(settings: Settings) -> FastAPI:
    app = FastAPI(title="Task Tracker API", lifespan=lifespan)

    engine = make_engine(settings.database_url)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    app.state.tokens = TokenService.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        logger.debug("%s %s -> %s (%.3fs)", request.method, request.url.path, response.status_code, elapsed)
        return response

    app.include_router(router)
    return app


def run() -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    app = create_app(settings)
    logger.info("Server running on port %s", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
