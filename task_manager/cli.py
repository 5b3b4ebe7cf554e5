"""
Command-line entrypoint.

Exit codes:
- 0: success
- 1: storage, validation, lookup or startup (config / migration) failure
- 2: usage error (unknown command, missing or malformed argument), raised by click

The database is opened only after a command's arguments have been parsed,
so ``--help`` and usage errors never touch storage.

A missing description is printed as ``None``; a description that is the
literal text "None" prints the same way.
"""

import logging
from functools import update_wrapper
from typing import Optional

import click

from . import crud
from .config import get_settings
from .crud import MAX_TASK_ID
from .database import establish_connection
from .errors import TaskManagerError
from .logging_setup import setup_logging
from .schemas import TaskOut

logger = logging.getLogger(__name__)

EXIT_FAILURE = 1

TASK_ID = click.IntRange(min=1, max=MAX_TASK_ID)


def _bool(value: bool) -> str:
    return "true" if value else "false"


def _description(value: Optional[str]) -> str:
    return "None" if value is None else value


def format_task(task: TaskOut) -> str:
    return (
        f"ID: {task.id}, Title: {task.title}, "
        f"Description: {_description(task.description)}, Completed: {_bool(task.completed)}"
    )


def _fail(action: str, exc: Exception) -> None:
    logger.debug("%s failed", action, exc_info=True)
    click.echo(f"Error {action}: {exc}", err=True)
    click.get_current_context().exit(EXIT_FAILURE)


def pass_db(f):
    """Open the configured database and pass its session as the first argument."""

    @click.pass_context
    def new_func(ctx: click.Context, *args, **kwargs):
        try:
            settings = get_settings()
            setup_logging(
                settings.log_level, log_file=settings.log_file, echo_sql=settings.echo_sql
            )
            db = ctx.with_resource(establish_connection(settings))
        except TaskManagerError as exc:
            _fail("starting up", exc)
            return None
        return ctx.invoke(f, db, *args, **kwargs)

    return update_wrapper(new_func, f)


@click.group(name="task-manager")
@click.version_option(package_name="task-manager")
def cli() -> None:
    """Track tasks in a local SQLite database."""


@cli.command()
@click.argument("title")
@click.option("-d", "--description", default=None, help="Optional longer description.")
@pass_db
def add(db, title: str, description: Optional[str]) -> None:
    """Add a new task."""
    try:
        task = crud.create_task(db, title, description)
    except TaskManagerError as exc:
        _fail("adding task", exc)
        return
    click.echo(f"Added task: {format_task(task)}")


@cli.command(name="list")
@pass_db
def list_tasks(db) -> None:
    """List all tasks."""
    try:
        for task in crud.iter_tasks(db):
            click.echo(format_task(task))
    except TaskManagerError as exc:
        _fail("listing tasks", exc)


@cli.command()
@click.argument("task_id", metavar="ID", type=TASK_ID)
@pass_db
def complete(db, task_id: int) -> None:
    """Mark a task as completed."""
    try:
        task = crud.update_task(db, task_id, True)
    except TaskManagerError as exc:
        _fail("completing task", exc)
        return
    click.echo(f"Completed task: ID: {task.id}, Title: {task.title}")


@cli.command()
@click.argument("task_id", metavar="ID", type=TASK_ID)
@pass_db
def delete(db, task_id: int) -> None:
    """Delete a task (deleting a missing id is not an error)."""
    try:
        deleted = crud.delete_task(db, task_id)
    except TaskManagerError as exc:
        _fail("deleting task", exc)
        return
    click.echo(f"Deleted {deleted} task(s)")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
