import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

import pydantic
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models, schemas
from .errors import NotFoundError, StorageError, ValidationError

logger = logging.getLogger(__name__)

# SQLite INTEGER is a signed 64-bit value.
MIN_TASK_ID = -(2**63)
MAX_TASK_ID = 2**63 - 1


@contextmanager
def _storage_errors(db: Session, action: str) -> Iterator[None]:
    try:
        yield
    except (SQLAlchemyError, OverflowError) as exc:
        db.rollback()
        raise StorageError(f"Failed to {action}: {exc}") from exc


def _storable(task_id: int) -> bool:
    return MIN_TASK_ID <= task_id <= MAX_TASK_ID


def _to_out(task: models.Task) -> schemas.TaskOut:
    return schemas.TaskOut.model_validate(task)


def create_task(db: Session, title: str, description: Optional[str] = None) -> schemas.TaskOut:
    try:
        task_in = schemas.TaskCreate(title=title, description=description)
    except pydantic.ValidationError as exc:
        raise ValidationError(
            "; ".join(f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in exc.errors())
        ) from exc

    task = models.Task(**task_in.model_dump(), completed=False)
    with _storage_errors(db, "create task"):
        db.add(task)
        # The flush fills task.id from the INSERT's own last-insert-id,
        # inside the same transaction as the row.
        db.flush()
        db.commit()
        db.refresh(task)
    logger.info("Task created id=%s", task.id)
    return _to_out(task)


def iter_tasks(db: Session) -> Iterator[schemas.TaskOut]:
    with _storage_errors(db, "read tasks"):
        for task in db.query(models.Task).yield_per(100):
            yield _to_out(task)


def read_tasks(db: Session) -> List[schemas.TaskOut]:
    return list(iter_tasks(db))


def get_task(db: Session, task_id: int) -> schemas.TaskOut:
    if not _storable(task_id):
        raise NotFoundError(task_id)
    with _storage_errors(db, "read task"):
        task = db.get(models.Task, task_id)
    if task is None:
        raise NotFoundError(task_id)
    return _to_out(task)


def update_task(db: Session, task_id: int, completed: bool) -> schemas.TaskOut:
    if not _storable(task_id):
        raise NotFoundError(task_id)
    with _storage_errors(db, "update task"):
        task = db.get(models.Task, task_id)
        if task is None:
            raise NotFoundError(task_id)
        task.completed = completed
        db.commit()
        db.refresh(task)
    logger.info("Task updated id=%s completed=%s", task.id, task.completed)
    return _to_out(task)


def delete_task(db: Session, task_id: int) -> int:
    if not _storable(task_id):
        return 0
    with _storage_errors(db, "delete task"):
        deleted = db.query(models.Task).filter(models.Task.id == task_id).delete()
        db.commit()
    logger.info("Task delete id=%s deleted=%s", task_id, deleted)
    return int(deleted)
