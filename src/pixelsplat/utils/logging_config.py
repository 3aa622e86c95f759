"""Logging setup for renders and the programs that embed them.

Library modules only call ``logging.getLogger(__name__)``; the host program
(or render_from_config) decides where records go:
    - Console handler on stderr (optional ANSI colors)
    - File handler, plain or rotating by size/time, text or JSON lines
    - Contextual fields (render_id, tile, ...) attached to every record
    - Python warnings and uncaught exceptions routed into logging

Public API:
    setup_logging("INFO", "logs/render.log", json=True, context={"render_id": "r01"})
    with log_context(tile=17):
        logger.debug("...")
    push_context(render_id="r02") / pop_context(["render_id"])
    set_level("DEBUG")
    install_excepthook()

Line formats:
    Human: 2025-10-28T13:45:12.345Z | INFO     | tile=17 | Tile 17 done
    JSON:  {"t": "2025-10-28T13:45:12.345+00:00", "lvl": "INFO", "tile": 17, "msg": "..."}

Contextual fields live in a contextvars.ContextVar. Threads start with an
empty context, so a tile index pushed by one worker never leaks into another.
setup_logging() may be called repeatedly; each call replaces the root handlers
instead of stacking duplicates.
"""

import contextvars
import json
import logging
import logging.handlers
import os
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from . import fs


_context_var: contextvars.ContextVar = contextvars.ContextVar('pixelsplat_log_context', default={})

_configured = False

_LEVEL_COLORS = {
    'DEBUG': '\033[36m',
    'INFO': '\033[32m',
    'WARNING': '\033[33m',
    'ERROR': '\033[31m',
    'CRITICAL': '\033[35m',
}
_RESET = '\033[0m'


class ContextFormatter(logging.Formatter):
    """Render a record plus the current contextual fields.

    Parameters
    ----------
    fmt_mode : str
        "human" for pipe-separated text, "json" for one JSON object per line
    use_color : bool
        Colorize the level name (human mode, only when stderr is a TTY)
    tz : str
        "UTC" or "local" timestamps
    """

    def __init__(self, fmt_mode: str = "human", use_color: bool = True, tz: str = "UTC"):
        super().__init__()
        if fmt_mode not in ("human", "json"):
            raise ValueError(f"Unknown format mode: {fmt_mode}. Use 'human' or 'json'.")
        self.fmt_mode = fmt_mode
        self.use_color = use_color and fmt_mode == "human" and sys.stderr.isatty()
        self.tz = tz

    def _timestamp(self, record: logging.LogRecord) -> datetime:
        if self.tz == "UTC":
            return datetime.fromtimestamp(record.created, tz=timezone.utc)
        return datetime.fromtimestamp(record.created)

    def format(self, record: logging.LogRecord) -> str:
        context = _context_var.get()
        ts = self._timestamp(record)
        if self.fmt_mode == "json":
            return self._json_line(record, ts, context)
        return self._human_line(record, ts, context)

    def _json_line(self, record: logging.LogRecord, ts: datetime, context: Dict[str, Any]) -> str:
        payload: Dict[str, Any] = {
            't': ts.isoformat(),
            'lvl': record.levelname,
            'name': record.name,
            'pid': os.getpid(),
            'thread': record.threadName,
        }
        payload.update(context)
        payload['msg'] = record.getMessage()
        if record.exc_info:
            payload['exc'] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)

    def _human_line(self, record: logging.LogRecord, ts: datetime, context: Dict[str, Any]) -> str:
        level = f"{record.levelname:8s}"
        if self.use_color:
            level = f"{_LEVEL_COLORS.get(record.levelname, '')}{level}{_RESET}"

        fields = [ts.strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z', level]
        if context:
            fields.append(' '.join(f"{k}={v}" for k, v in context.items()))
        fields.append(record.getMessage())

        line = ' | '.join(fields)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _parse_level(level: str) -> int:
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def _rotating_handler(log_file: Path, rotate: Dict[str, Any]) -> logging.Handler:
    mode = rotate.get('mode', 'size')
    if mode == 'size':
        return logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=rotate.get('max_bytes', 50_000_000),
            backupCount=rotate.get('backup_count', 5),
        )
    if mode == 'time':
        return logging.handlers.TimedRotatingFileHandler(
            log_file,
            when=rotate.get('when', 'D'),
            interval=rotate.get('interval', 1),
            backupCount=rotate.get('backup_count', 7),
        )
    raise ValueError(f"Unknown rotation mode: {mode}. Use 'size' or 'time'.")


def _file_handler(
    log_file: str,
    rotate: Optional[Dict[str, Any]],
    json_format: bool,
    tz: str
) -> logging.Handler:
    path = Path(log_file)
    fs.ensure_dir(path.parent)
    handler = _rotating_handler(path, rotate) if rotate else logging.FileHandler(path)
    handler.setFormatter(ContextFormatter("json" if json_format else "human", use_color=False, tz=tz))
    return handler


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    *,
    json: bool = False,
    color: bool = True,
    to_stderr: bool = True,
    rotate: Optional[Dict[str, Any]] = None,
    tz: str = "UTC",
    capture_warnings: bool = True,
    quiet_libs: Optional[List[str]] = None,
    context: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Configure the root logger.

    Parameters
    ----------
    log_level : str
        "DEBUG" shows one line per tile; "INFO" shows render start and timing
    log_file : str, optional
        Log file path (parent directories are created); None for no file
    json : bool
        Write the log file as JSON lines, default False
    color : bool
        ANSI colors on the console, default True
    to_stderr : bool
        Add a console handler, default True
    rotate : dict, optional
        {"mode": "size", "max_bytes": ..., "backup_count": ...} or
        {"mode": "time", "when": "D", "interval": 1, "backup_count": ...}
    tz : str
        "UTC" (default) or "local" timestamps
    capture_warnings : bool
        Route Python warnings into logging, default True
    quiet_libs : list[str], optional
        Logger names to raise to WARNING
    context : dict, optional
        Fields attached to every record from now on (e.g. {"render_id": "r01"})

    Returns
    -------
    dict
        {"handlers": [...]} installed on the root logger

    Raises
    ------
    ValueError
        On an unknown level or rotation mode
    """
    global _configured

    level = _parse_level(log_level)
    handlers: List[logging.Handler] = []
    if to_stderr:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(ContextFormatter("human", color, tz))
        handlers.append(console)
    if log_file:
        handlers.append(_file_handler(log_file, rotate, json, tz))

    root = logging.getLogger()
    if _configured:
        root.handlers.clear()
    root.setLevel(level)
    for handler in handlers:
        root.addHandler(handler)

    if context:
        push_context(**context)
    for lib in quiet_libs or ():
        logging.getLogger(lib).setLevel(logging.WARNING)
    if capture_warnings:
        route_warnings()

    _configured = True
    return {'handlers': handlers}


def get_logger(name: str) -> logging.Logger:
    """Logger by name, typically ``__name__``."""
    return logging.getLogger(name)


def set_level(level: str) -> None:
    """Change the root level at runtime, e.g. set_level("DEBUG") for per-tile lines."""
    logging.getLogger().setLevel(_parse_level(level))


def push_context(**fields) -> None:
    """Attach fields to every subsequent record of the current thread."""
    _context_var.set({**_context_var.get(), **fields})


def pop_context(keys: Optional[Iterable[str]] = None) -> None:
    """Remove the given fields; clear all fields when ``keys`` is None."""
    if keys is None:
        _context_var.set({})
        return
    remaining = dict(_context_var.get())
    for key in keys:
        remaining.pop(key, None)
    _context_var.set(remaining)


def get_context() -> Dict[str, Any]:
    """Copy of the current thread's contextual fields."""
    return dict(_context_var.get())


@contextmanager
def log_context(**fields):
    """Attach fields for the duration of a block, then restore the previous context.

    Examples
    --------
    >>> with log_context(tile=3):
    ...     logger.debug("splatting")  # → "... | tile=3 | splatting"
    """
    token = _context_var.set({**_context_var.get(), **fields})
    try:
        yield
    finally:
        _context_var.reset(token)


def install_excepthook() -> None:
    """Log uncaught exceptions at CRITICAL before the interpreter reports them."""
    def _log_uncaught(exc_type, exc_value, exc_traceback):
        if not issubclass(exc_type, KeyboardInterrupt):
            logging.getLogger(__name__).critical(
                "Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback)
            )
        sys.__excepthook__(exc_type, exc_value, exc_traceback)

    sys.excepthook = _log_uncaught


def route_warnings() -> None:
    """Send warnings.warn() output through the 'py.warnings' logger."""
    logging.captureWarnings(True)
    logging.getLogger('py.warnings').setLevel(logging.WARNING)
