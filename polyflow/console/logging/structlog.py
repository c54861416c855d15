from __future__ import annotations

import logging
from pathlib import Path

import structlog
from rich.console import Console
from rich.logging import RichHandler
from structlog.typing import EventDict
from structlog.typing import Processor
from structlog.typing import WrappedLogger


def polyflow_event_renamer(
    _: WrappedLogger, __: str, event_dict: EventDict
) -> EventDict:
    """Ensures 'message' key exists, typically by renaming 'event'."""
    if "message" not in event_dict and "event" in event_dict:
        event_dict["message"] = event_dict.pop("event")
    elif "event" not in event_dict and "message" not in event_dict:
        event_dict["message"] = "Log event"
    return event_dict


SHARED_PROCESSORS: list[Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.CallsiteParameterAdder(
        [
            structlog.processors.CallsiteParameter.MODULE,
            structlog.processors.CallsiteParameter.FUNC_NAME,
            structlog.processors.CallsiteParameter.LINENO,
            structlog.processors.CallsiteParameter.THREAD_NAME,
        ]
    ),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
]


_CONSOLE_HIDDEN_KEYS = frozenset(
    {
        "timestamp",
        "level",
        "logger",
        "module",
        "func_name",
        "lineno",
        "thread_name",
        "exception",
    }
)


def render_for_console(_: WrappedLogger, __: str, event_dict: EventDict) -> str:
    """Event text followed by the bound key=value pairs; RichHandler adds time and level."""
    message = str(event_dict.get("event", event_dict.get("message", "")))
    extras = " ".join(
        f"{key}={value}"
        for key, value in event_dict.items()
        if key not in _CONSOLE_HIDDEN_KEYS and key not in ("event", "message")
    )
    rendered = f"{message} {extras}".rstrip()
    if "exception" in event_dict:
        rendered += "\n" + str(event_dict["exception"])
    return rendered


def _level(log_level: int | str) -> int:
    if isinstance(log_level, int):
        return log_level
    return logging.getLevelName(log_level.upper())


def configure_structlog(
    log_level: int | str = logging.INFO,
    console: Console | None = None,
) -> None:
    """
    Configures structlog and the standard Python logging system.
    This MUST be called once at application startup.
    """
    structlog.configure(
        processors=SHARED_PROCESSORS
        + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    effective_log_level = _level(log_level)
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    if console is not None:
        console_handler = RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            log_time_format="[%X]",
        )
        console_handler.setLevel(effective_log_level)
        console_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    render_for_console,
                ],
                foreign_pre_chain=[
                    structlog.stdlib.add_logger_name,
                    structlog.stdlib.PositionalArgumentsFormatter(),
                ],
                keep_exc_info=True,
                keep_stack_info=True,
            )
        )
        root_logger.addHandler(console_handler)

    root_logger.setLevel(effective_log_level)
    structlog.get_logger("polyflow.logging").debug(
        "Structlog globally configured.",
        root_level=logging.getLevelName(effective_log_level),
    )


_JSON_FILE_HANDLER_REFERENCE: logging.FileHandler | None = None


def add_json_file_handler(
    log_file_path: str | Path, log_level: int | str = logging.DEBUG
) -> logging.FileHandler:
    """
    Adds a FileHandler that logs in JSON format to the Python root logger.
    """
    global _JSON_FILE_HANDLER_REFERENCE
    log = structlog.get_logger(__name__)

    log_file_p = Path(log_file_path).resolve()
    log_file_p.parent.mkdir(parents=True, exist_ok=True)

    remove_json_file_handler()

    file_handler = logging.FileHandler(str(log_file_p), encoding="utf-8")

    # Records from structlog arrive with their event dict; plain stdlib records
    # go through the shared chain first so both render with the same keys.
    json_formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            polyflow_event_renamer,
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        foreign_pre_chain=list(SHARED_PROCESSORS),
    )

    file_handler.setFormatter(json_formatter)
    file_handler.setLevel(_level(log_level))

    root_logger = logging.getLogger()
    root_logger.addHandler(file_handler)
    if root_logger.level > file_handler.level:
        root_logger.setLevel(file_handler.level)
    _JSON_FILE_HANDLER_REFERENCE = file_handler

    log.info(
        "JSON file logging enabled.",
        path=str(log_file_p),
        handler_level=logging.getLevelName(file_handler.level),
    )
    return file_handler


def remove_json_file_handler() -> None:
    """Removes the JSON file handler if it exists."""
    global _JSON_FILE_HANDLER_REFERENCE
    if _JSON_FILE_HANDLER_REFERENCE:
        structlog.get_logger(__name__).debug(
            "Removing JSON file handler.",
            handler_name=str(_JSON_FILE_HANDLER_REFERENCE),
        )
        _JSON_FILE_HANDLER_REFERENCE.close()
        logging.getLogger().removeHandler(_JSON_FILE_HANDLER_REFERENCE)
        _JSON_FILE_HANDLER_REFERENCE = None
