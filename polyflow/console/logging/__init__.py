from .structlog import add_json_file_handler
from .structlog import configure_structlog
from .structlog import remove_json_file_handler

__all__ = [
    "add_json_file_handler",
    "configure_structlog",
    "remove_json_file_handler",
]
