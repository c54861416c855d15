import json
import logging
from pathlib import Path
from typing import Any

import tomlkit
import yaml
from pydantic import ValidationError
from tomlkit.exceptions import TOMLKitError

from polyflow.definition.schema import WorkflowDefinition
from polyflow.exceptions import DefinitionError

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".yaml", ".yml", ".json", ".toml")


def _parse(text: str, format: str) -> Any:
    match format:
        case "yaml" | "yml":
            return yaml.safe_load(text)
        case "json":
            return json.loads(text)
        case "toml":
            return tomlkit.parse(text).unwrap()
        case other:
            raise DefinitionError(
                f"Unsupported workflow format: {other}. Must be yaml, json, or toml"
            )


class WorkflowDefinitionLoader:
    """Loads and validates a workflow definition from a file, a string or a dict."""

    def from_path(self, file_path: Path) -> WorkflowDefinition:
        """Loads a workflow definition from a .yaml/.yml, .json or .toml file."""
        file_path = Path(file_path)
        logger.info(f"Loading workflow definition from: {file_path}")

        if not file_path.exists():
            raise DefinitionError(f"File not found: {file_path}")

        if file_path.suffix not in SUPPORTED_SUFFIXES:
            raise DefinitionError(
                f"Unsupported file type: {file_path.suffix}. "
                f"Must be .yaml, .yml, .json, or .toml"
            )

        try:
            text = file_path.read_text(encoding="utf-8")
        except OSError as e:
            raise DefinitionError(
                f"Error reading workflow file {file_path}: {e}"
            ) from e

        data = self._parse_text(text, file_path.suffix.lstrip("."), file_path)
        return self.from_dict(data, file_path)

    def from_string(
        self, text: str, format: str = "yaml", source: Path | None = None
    ) -> WorkflowDefinition:
        """Parses workflow source text in the given format."""
        data = self._parse_text(text, format.lower(), source)
        return self.from_dict(data, source)

    def from_dict(
        self, data: dict[str, Any], file_path: Path | None = None
    ) -> WorkflowDefinition:
        """Parses a raw document into a WorkflowDefinition."""
        if not isinstance(data, dict):
            raise DefinitionError(
                f"Workflow document must deserialize to a dictionary. Got: {type(data)}"
            )

        if "workflow" in data:
            body = data["workflow"]
            if len(data) > 1:
                extra = sorted(k for k in data if k != "workflow")
                raise DefinitionError(
                    f"Unexpected top-level keys next to 'workflow': {extra}"
                )
        else:
            body = data

        if not isinstance(body, dict):
            raise DefinitionError(
                f"'workflow' must be a mapping with name, description and steps. Got: {type(body)}"
            )

        if "steps" not in body:
            raise DefinitionError("Workflow definition has no 'steps' section.")

        steps = body["steps"]
        if not isinstance(steps, dict):
            raise DefinitionError(
                f"'steps' must be a mapping of step name to step body. Got: {type(steps)}"
            )

        for step_name, step_body in steps.items():
            if not isinstance(step_body, dict):
                raise DefinitionError(
                    f"Step '{step_name}' must be a mapping. Got: {type(step_body)}"
                )
            if "run" in step_body:
                raise DefinitionError(
                    f"Step '{step_name}' uses the legacy 'run' descriptor, which is no "
                    f"longer supported. Declare the step with 'language' and 'code', "
                    f"e.g. language: lua and code: 'function run(inputs) ... end'."
                )

        if not body.get("name") and file_path is not None:
            body = {**body, "name": Path(file_path).stem}

        try:
            model = WorkflowDefinition.model_validate(body)
        except ValidationError as e:
            logger.debug("Workflow validation failed.", exc_info=True)
            raise DefinitionError(f"Workflow validation error: {e}") from e

        source = f" from {file_path}" if file_path else ""
        logger.info(
            f"Workflow definition '{model.name}'{source} validated successfully "
            f"({len(model.steps)} steps)."
        )
        return model

    @staticmethod
    def _parse_text(text: str, format: str, source: Path | None) -> Any:
        origin = source or "<string>"
        try:
            return _parse(text, format)
        except (yaml.YAMLError, json.JSONDecodeError, TOMLKitError) as e:
            raise DefinitionError(
                f"Failed to parse workflow source {origin}: {e}"
            ) from e
