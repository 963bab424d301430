# src/paperrepo/utils/logging_config.py
"""
File logging for PaperRepo.

Usage:
    from paperrepo.utils.logging_config import Logger, LogFiles

    Logger.info("Request submitted", file=LogFiles.REQUESTS)
    Logger.error("SMTP rejected message", file=LogFiles.MAIL)
    Logger.info("General message")          # logs/paperrepo.log

Every line carries the trace id of the current HTTP request (set by the API
middleware through ``set_trace_id``) and the caller's file:line.

Environment:
    PAPERREPO_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL (default: INFO)
    PAPERREPO_LOG_DIR: base directory for log files (default: logs/)
    PAPERREPO_LOG_MAX_BYTES: rotation size per file (default: 10MB)
    PAPERREPO_LOG_BACKUP_COUNT: rotated files kept (default: 5)
"""

from __future__ import annotations

import inspect
import os
import traceback
import uuid
from contextvars import ContextVar
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

_trace_id_var: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_FILE = "paperrepo.log"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_BACKUP_COUNT = 5
DEFAULT_FORMAT = "{timestamp} [{level}] [{trace_id}] {filename}:{lineno} - {message}"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_CONFIG_FILE = Path(__file__).parent / "log_config.yaml"

_DEFAULT_FILES: Dict[str, str] = {
    "requests": "requests/paper_requests.log",
    "papers": "papers/papers.log",
    "auth": "auth/auth.log",
    "mail": "mail/mail.log",
    "api": "api/api.log",
    "error": "errors/error.log",
}


class _LogFilesMeta(type):
    """Lets callers write LogFiles.REQUESTS instead of LogFiles.get("requests")."""

    def __getattr__(cls, name: str) -> str:
        files = cls._load()
        key = name if name in files else name.lower()
        if key in files:
            return files[key]
        raise AttributeError(f"Log file '{name}' not found in config")


class LogFiles(metaclass=_LogFilesMeta):
    """
    Named log files, defaults overridable from ``log_config.yaml``::

        files:
          requests: requests/paper_requests.log
    """

    _files: Optional[Dict[str, str]] = None

    @classmethod
    def _load(cls) -> Dict[str, str]:
        if cls._files is not None:
            return cls._files

        files = dict(_DEFAULT_FILES)
        try:
            import yaml

            if LOG_CONFIG_FILE.exists():
                with open(LOG_CONFIG_FILE, "r", encoding="utf-8") as f:
                    config = yaml.safe_load(f) or {}
                files.update(config.get("files") or {})
        except Exception:
            # keep the defaults
            pass

        cls._files = files
        return files

    @classmethod
    def get(cls, name: str) -> str:
        files = cls._load()
        return files.get(name) or files.get(name.lower()) or f"{name}/{name}.log"


LOG_LEVELS = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}

_initialized = False
_config: dict = {}
_file_handlers: Dict[str, RotatingFileHandler] = {}


def _get_config() -> dict:
    return {
        "level": os.environ.get("PAPERREPO_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        "base_dir": os.environ.get("PAPERREPO_LOG_DIR", DEFAULT_LOG_DIR),
        "max_bytes": int(os.environ.get("PAPERREPO_LOG_MAX_BYTES", DEFAULT_MAX_BYTES)),
        "backup_count": int(os.environ.get("PAPERREPO_LOG_BACKUP_COUNT", DEFAULT_BACKUP_COUNT)),
    }


def _get_file_handler(file_path: str) -> RotatingFileHandler:
    handler = _file_handlers.get(file_path)
    if handler is None:
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            filename=str(path),
            maxBytes=_config.get("max_bytes", DEFAULT_MAX_BYTES),
            backupCount=_config.get("backup_count", DEFAULT_BACKUP_COUNT),
            encoding="utf-8",
        )
        _file_handlers[file_path] = handler
    return handler


def _resolve_file_path(file: Optional[str]) -> str:
    base_dir = _config.get("base_dir", DEFAULT_LOG_DIR)
    return str(Path(base_dir) / (file or DEFAULT_LOG_FILE))


def _should_log(level: str) -> bool:
    current_level = _config.get("level", DEFAULT_LOG_LEVEL)
    return LOG_LEVELS.get(level, 0) >= LOG_LEVELS.get(current_level, 0)


def _write_log(level: str, message: str, file: Optional[str] = None) -> None:
    if not _should_log(level):
        return

    # Two frames up: _write_log <- Logger.<level> <- caller.
    frame = inspect.currentframe()
    caller = frame.f_back.f_back if frame and frame.f_back else None
    filename = os.path.basename(caller.f_code.co_filename) if caller else "unknown"
    lineno = caller.f_lineno if caller else 0

    line = DEFAULT_FORMAT.format(
        timestamp=datetime.now().strftime(DEFAULT_DATE_FORMAT),
        level=level,
        trace_id=_trace_id_var.get() or "-",
        filename=filename,
        lineno=lineno,
        message=message,
    )

    handler = _get_file_handler(_resolve_file_path(file))
    if handler.shouldRollover(_LineRecord(line)):
        handler.doRollover()
    handler.stream.write(line + "\n")
    handler.stream.flush()


class _LineRecord:
    """Minimal stand-in for a LogRecord so RotatingFileHandler can size it."""

    def __init__(self, line: str):
        self.msg = line
        self.args = None
        self.exc_info = None
        self.exc_text = None
        self.stack_info = None

    def getMessage(self) -> str:
        return self.msg


class Logger:
    """Static file logger; initialises itself from the environment on first use."""

    @staticmethod
    def init(
        level: Optional[str] = None,
        base_dir: Optional[str] = None,
        max_bytes: Optional[int] = None,
        backup_count: Optional[int] = None,
    ) -> None:
        global _initialized, _config

        if _initialized:
            return

        _config = _get_config()
        if level:
            _config["level"] = level.upper()
        if base_dir:
            _config["base_dir"] = base_dir
        if max_bytes:
            _config["max_bytes"] = max_bytes
        if backup_count:
            _config["backup_count"] = backup_count

        _initialized = True

    @staticmethod
    def _ensure_init() -> None:
        if not _initialized:
            Logger.init()

    @staticmethod
    def debug(message: str, file: Optional[str] = None) -> None:
        Logger._ensure_init()
        _write_log("DEBUG", message, file)

    @staticmethod
    def info(message: str, file: Optional[str] = None) -> None:
        Logger._ensure_init()
        _write_log("INFO", message, file)

    @staticmethod
    def warning(message: str, file: Optional[str] = None) -> None:
        Logger._ensure_init()
        _write_log("WARNING", message, file)

    @staticmethod
    def error(message: str, file: Optional[str] = None) -> None:
        Logger._ensure_init()
        _write_log("ERROR", message, file)

    @staticmethod
    def exception(message: str, exc: BaseException, file: Optional[str] = None) -> None:
        """Log an error with the formatted traceback of ``exc``."""
        Logger._ensure_init()
        detail = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        _write_log("ERROR", f"{message}\n{detail.rstrip()}", file)

    @staticmethod
    def set_level(level: str) -> None:
        Logger._ensure_init()
        _config["level"] = level.upper()

    @staticmethod
    def close() -> None:
        """Close handlers and forget the configuration (tests re-point the log dir)."""
        global _initialized
        for handler in _file_handlers.values():
            handler.close()
        _file_handlers.clear()
        _initialized = False


# ============================================================================
# Trace ID Management
# ============================================================================

def generate_trace_id() -> str:
    return f"req-{uuid.uuid4().hex[:12]}"


def set_trace_id(trace_id: Optional[str] = None) -> str:
    """Bind a trace id to the current context and return it."""
    tid = trace_id or generate_trace_id()
    _trace_id_var.set(tid)
    return tid


def get_trace_id() -> Optional[str]:
    return _trace_id_var.get()


def clear_trace_id() -> None:
    _trace_id_var.set(None)
