import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.database import Task, User
from backend.errors import ConflictError

logger = logging.getLogger(__name__)

UPDATABLE_TASK_FIELDS = {"status", "priority"}


class CredentialStore:
    def __init__(self, db: Session):
        self.db = db

    def create_user(self, username: str, password_hash: str) -> User:
        # уникальность имени гарантирует индекс users.username, а не предварительная проверка
        user = User(username=username, password_hash=password_hash)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("User already exists")
        return user

    def find_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()


class TaskStore:
    """Все операции, кроме create, ограничены владельцем задачи."""

    def __init__(self, db: Session):
        self.db = db

    def _owned(self, task_id: str, owner_id: str):
        return self.db.query(Task).filter(Task.id == task_id, Task.owner_id == owner_id)

    def create(self, owner_id: str, text: str, status: Optional[str] = None, priority: Optional[str] = None) -> Task:
        task = Task(text=text, status=status, priority=priority, owner_id=owner_id)
        self.db.add(task)
        self.db.commit()
        return task

    def list_by_owner(self, owner_id: str) -> List[Task]:
        return self.db.query(Task).filter(Task.owner_id == owner_id).order_by(Task.created_at).all()

    def get_owned(self, task_id: str, owner_id: str) -> Optional[Task]:
        return self._owned(task_id, owner_id).first()

    def delete_one_owned(self, task_id: str, owner_id: str) -> Optional[Task]:
        task = self._owned(task_id, owner_id).with_for_update().first()
        if task is None:
            self.db.rollback()
            return None
        self.db.delete(task)
        self.db.commit()
        return task

    def update_field_owned(self, task_id: str, owner_id: str, field: str, value: str) -> Optional[Task]:
        if field not in UPDATABLE_TASK_FIELDS:
            raise ValueError(f"field {field!r} is not updatable")
        task = self._owned(task_id, owner_id).with_for_update().first()
        if task is None:
            self.db.rollback()
            return None
        setattr(task, field, value)
        self.db.commit()
        logger.debug("Task %s: %s -> %r", task_id, field, value)
        return task
