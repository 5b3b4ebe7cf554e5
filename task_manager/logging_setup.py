import logging
import sys
from pathlib import Path
from typing import Optional, Union

_HANDLER_MARK = "_task_manager_handler"


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the terminal readable:
    - allow all task_manager logs at the configured level
    - suppress third-party noise (sqlalchemy engine chatter) unless WARNING+
    """

    def __init__(self, allow_sql: bool = False):
        super().__init__()
        self.allow_sql = allow_sql

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith("task_manager"):
            return True
        if self.allow_sql and name.startswith("sqlalchemy.engine"):
            return True
        return record.levelno >= logging.WARNING


def setup_logging(
    level: Union[int, str] = logging.WARNING,
    *,
    log_file: Optional[Union[str, Path]] = None,
    echo_sql: bool = False,
) -> None:
    """
    Configure logging with:
    - Console handler on stderr (stdout is reserved for command output)
    - Optional file handler with full DEBUG logs

    Calling it again replaces the handlers installed by a previous call.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in list(root.handlers):
        if getattr(h, _HANDLER_MARK, False):
            root.removeHandler(h)
            h.close()

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter(allow_sql=echo_sql))
    setattr(ch, _HANDLER_MARK, True)
    root.addHandler(ch)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(log_file), encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(fmt)
        setattr(fh, _HANDLER_MARK, True)
        root.addHandler(fh)

    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if echo_sql else logging.WARNING
    )
    logging.captureWarnings(True)
