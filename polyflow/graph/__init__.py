from .resolver import ExecutionLevel
from .resolver import execution_levels
from .resolver import topological_order
from .resolver import validate_dependencies

__all__ = [
    "ExecutionLevel",
    "execution_levels",
    "topological_order",
    "validate_dependencies",
]
