"""Validated records mirroring the adventure document format.

The models only check the *shape* of a document: required fields, types and
simple value constraints. Compiling the embedded DSL snippets happens later in
:mod:`inkspire.adventure`.
"""

from __future__ import annotations

import re
from typing import Any, List, Mapping

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    ValidationError,
    field_validator,
)

from .errors import DiagnosticContext, DocumentError

SUPPORTED_FORMAT_VERSION = 1
_SEPARATOR_PATTERN = re.compile(r"[,;]")


def _validate_name(value: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError("name is a required field.")
    if ":" in stripped:
        raise ValueError("name cannot contain a colon.")
    if not re.fullmatch(r"[A-Za-z0-9_]+", stripped):
        raise ValueError(
            "name may only contain letters, digits and underscores."
        )
    return stripped


def _validate_required_text(value: str, field_name: str) -> str:
    if not value.strip():
        raise ValueError(f"{field_name} is a required field.")
    return value


def _coerce_statement_list(value: Any) -> List[str]:
    """Accept ``"a=1; b=2"``, ``["a=1", "b=2"]`` or ``None``."""

    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list) and all(isinstance(entry, str) for entry in value):
        return [entry for entry in value if entry.strip()]
    raise ValueError("must be a string or a list of strings.")


class _DocumentModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class OptionDocument(_DocumentModel):
    """A player choice leading out of a scene."""

    label: str
    target: str
    condition: str | None = None
    always_visible: StrictBool = Field(default=False, alias="alwaysVisible")
    actions: List[str] = Field(default_factory=list)

    @field_validator("target")
    @classmethod
    def _require_target(cls, value: str) -> str:
        return _validate_required_text(value, "target").strip()

    @field_validator("condition", mode="before")
    @classmethod
    def _blank_condition_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("actions", mode="before")
    @classmethod
    def _coerce_actions(cls, value: Any) -> List[str]:
        return _coerce_statement_list(value)


class SceneDocument(_DocumentModel):
    """A node of the narrative graph."""

    name: str
    title: str
    content: List[str] = Field(..., min_length=1)
    actions: List[str] = Field(default_factory=list)
    options: List[OptionDocument] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return _validate_name(value)

    @field_validator("title")
    @classmethod
    def _check_title(cls, value: str) -> str:
        return _validate_required_text(value, "title")

    @field_validator("actions", mode="before")
    @classmethod
    def _coerce_actions(cls, value: Any) -> List[str]:
        return _coerce_statement_list(value)


class AdventureDocument(_DocumentModel):
    """Top-level record describing one adventure file."""

    name: str
    title: str
    version: StrictInt
    author: str | None = None
    requires: List[str] = Field(default_factory=list)
    actions: List[str] = Field(default_factory=list)
    global_top: str | None = Field(default=None, alias="globalTop")
    global_bottom: str | None = Field(default=None, alias="globalBottom")
    starting_scene: str = Field(default="start", alias="startingScene")
    scenes: List[SceneDocument]

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return _validate_name(value)

    @field_validator("title")
    @classmethod
    def _check_title(cls, value: str) -> str:
        return _validate_required_text(value, "title")

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: int) -> int:
        if value != SUPPORTED_FORMAT_VERSION:
            raise ValueError(f"invalid version number: {value}")
        return value

    @field_validator("requires", mode="before")
    @classmethod
    def _split_requires(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = _SEPARATOR_PATTERN.split(value)
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ValueError("must be a string or a list of strings.")
        return [entry.strip() for entry in value if entry.strip()]

    @field_validator("actions", mode="before")
    @classmethod
    def _coerce_actions(cls, value: Any) -> List[str]:
        return _coerce_statement_list(value)

    @field_validator("starting_scene", mode="before")
    @classmethod
    def _default_starting_scene(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return "start"
        return value


def _context_for_location(
    payload: Mapping[str, Any], loc: tuple[Any, ...]
) -> tuple[str, DiagnosticContext]:
    """Map a pydantic error location onto adventure/scene/option names."""

    context = DiagnosticContext()
    name = payload.get("name")
    context.adventure = name if isinstance(name, str) and name else "unknown"
    location = "adventure"

    if len(loc) >= 2 and loc[0] == "scenes" and isinstance(loc[1], int):
        scenes = payload.get("scenes")
        scene: Any = scenes[loc[1]] if isinstance(scenes, list) else None
        scene_name = scene.get("name") if isinstance(scene, Mapping) else None
        context.scene = scene_name if isinstance(scene_name, str) and scene_name else f"#{loc[1]}"
        location = "scene"

        if len(loc) >= 4 and loc[2] == "options" and isinstance(loc[3], int):
            options = scene.get("options") if isinstance(scene, Mapping) else None
            option: Any = options[loc[3]] if isinstance(options, list) else None
            label = option.get("label") if isinstance(option, Mapping) else None
            context.option = label if isinstance(label, str) and label else f"#{loc[3]}"
            location = "option"

    return location, context


def validate_adventure(payload: Any) -> AdventureDocument:
    """Validate ``payload`` and return the typed record.

    Raises:
        DocumentError: describing the first violation, tagged with the
            adventure, scene and option it occurred in.
    """

    if not isinstance(payload, Mapping):
        raise DocumentError(
            "adventure",
            "Adventure documents must contain an object at the top level.",
        )

    try:
        return AdventureDocument.model_validate(dict(payload))
    except ValidationError as exc:
        first = exc.errors()[0]
        loc = tuple(first.get("loc", ()))
        location, context = _context_for_location(payload, loc)
        field = next((part for part in reversed(loc) if isinstance(part, str)), "document")
        message = str(first.get("msg", "invalid value")).removeprefix("Value error, ")
        raise DocumentError(location, f"{field}: {message}", context=context) from exc


__all__ = [
    "AdventureDocument",
    "OptionDocument",
    "SUPPORTED_FORMAT_VERSION",
    "SceneDocument",
    "validate_adventure",
]
