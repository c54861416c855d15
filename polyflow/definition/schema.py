from __future__ import annotations

import logging
from typing import Any

from pydantic import AliasChoices
from pydantic import BaseModel
from pydantic import Field
from pydantic import field_validator
from pydantic import model_validator

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "lua"
DEFAULT_ENTRY_POINT = "run"
BINARY_MODULE_LANGUAGES = frozenset({"wasm", "webassembly"})


class StepDefinition(BaseModel):
    name: str = Field(min_length=1)
    language: str = DEFAULT_LANGUAGE
    code: str = ""
    depends_on: tuple[str, ...] = Field(default_factory=tuple)
    module: str | None = None
    function: str = Field(
        default=DEFAULT_ENTRY_POINT,
        validation_alias=AliasChoices("function", "func"),
    )
    description: str | None = None

    model_config = {"extra": "forbid", "frozen": True}

    @field_validator("language", mode="before")
    @classmethod
    def normalize_language(cls, v: Any) -> Any:
        if v is None:
            return DEFAULT_LANGUAGE
        if isinstance(v, str):
            return v.strip().lower() or DEFAULT_LANGUAGE
        return v

    @field_validator("depends_on", mode="before")
    @classmethod
    def coerce_depends_on(cls, v: Any) -> Any:
        """Accepts a single name or a list; duplicates are dropped keeping first-seen order."""
        if v is None:
            return ()
        if isinstance(v, str):
            v = [v]
        if isinstance(v, list | tuple):
            invalid = [d for d in v if not isinstance(d, str)]
            if invalid:
                raise ValueError(
                    f"'depends_on' entries must be step names, got {invalid!r}"
                )
            return tuple(dict.fromkeys(v))
        return v

    @model_validator(mode="after")
    def check_body(self) -> StepDefinition:
        if self.is_binary_module:
            if not self.module:
                raise ValueError(
                    f"Step '{self.name}' uses language '{self.language}' and must "
                    f"declare the path of its compiled module in 'module'."
                )
        elif not self.code.strip():
            raise ValueError(f"Step '{self.name}' has no code.")
        return self

    @property
    def is_binary_module(self) -> bool:
        return self.language in BINARY_MODULE_LANGUAGES


class WorkflowDefinition(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    steps: dict[str, StepDefinition] = Field(default_factory=dict)

    model_config = {"extra": "forbid"}

    @field_validator("steps", mode="before")
    @classmethod
    def inject_step_names(cls, v: Any) -> Any:
        """The key of each entry in `steps` is the step's name."""
        if not isinstance(v, dict):
            return v

        steps = {}
        for key, body in v.items():
            if isinstance(body, dict):
                declared = body.get("name", key)
                if declared != key:
                    raise ValueError(
                        f"Step '{key}' declares a different name '{declared}'."
                    )
                body = {**body, "name": key}
            steps[key] = body
        return steps

    @property
    def step_list(self) -> list[StepDefinition]:
        return list(self.steps.values())

    def get_step(self, name: str) -> StepDefinition | None:
        return self.steps.get(name)
