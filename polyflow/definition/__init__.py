"""
Handles the loading, parsing, and validation of workflow definition files.

This module provides the `WorkflowDefinitionLoader` to read workflow documents
and the Pydantic schema models (`WorkflowDefinition`, `StepDefinition`) that
define their structure.
"""

from .loader import WorkflowDefinitionLoader
from .schema import BINARY_MODULE_LANGUAGES
from .schema import StepDefinition
from .schema import WorkflowDefinition

__all__ = [
    "BINARY_MODULE_LANGUAGES",
    "StepDefinition",
    "WorkflowDefinition",
    "WorkflowDefinitionLoader",
]
