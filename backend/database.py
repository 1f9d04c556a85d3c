import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

Base = declarative_base()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


# -----------------------------
# Модели БД
# -----------------------------
class User(Base):
    __tablename__ = "users"
    id = Column(String(32), primary_key=True, default=_new_id)
    username = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    tasks = relationship("Task", back_populates="owner")

    def __repr__(self):
        return f"<User id={self.id!r} username={self.username!r}>"


class Task(Base):
    __tablename__ = "tasks"
    id = Column(String(32), primary_key=True, default=_new_id)
    text = Column(Text, nullable=False)
    status = Column(String, nullable=False, default="pending")
    priority = Column(String, nullable=False, default="medium")
    owner_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now)
    owner = relationship("User", back_populates="tasks")


# -----------------------------
# Подключение
# -----------------------------
def make_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)


def make_session_factory(engine: Engine) -> sessionmaker:
    # expire_on_commit=False: удалённая задача должна оставаться читаемой после commit
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Создаёт таблицы и индексы (users.username уникален, tasks.owner_id индексирован)."""
    Base.metadata.create_all(bind=engine)


@event.listens_for(Task, "init", propagate=True)
def _task_init(target, args, kwargs):
    # пустые status/priority заменяем значениями по умолчанию ещё до flush
    if not kwargs.get("status"):
        kwargs["status"] = "pending"
    if not kwargs.get("priority"):
        kwargs["priority"] = "medium"
