from .about import about
from .list import list_workflows
from .plan import plan
from .run import run
from .validate import validate

__all__ = [
    "about",
    "list_workflows",
    "plan",
    "run",
    "validate",
]
