"""Test configuration for the Inkspire project."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Callable

import pytest

from inkspire import AdventureEngine, EngineSettings, VariableStore
from inkspire.loader import mapping_source


class ScriptedIO:
    """Deterministic stand-in for the console used by the engine."""

    def __init__(self, inputs: Iterable[str] = ()) -> None:
        self._inputs: list[str] = list(inputs)
        self.lines: list[str] = []
        self.reads = 0

    def queue(self, *inputs: str) -> None:
        """Append responses returned by the following reads."""

        self._inputs.extend(inputs)

    def read(self) -> str:
        self.reads += 1
        if not self._inputs:
            raise AssertionError("ScriptedIO expected a queued input but none remain")
        return self._inputs.pop(0)

    def write(self, line: str) -> None:
        self.lines.append(line)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    @property
    def non_blank(self) -> list[str]:
        return [line for line in self.lines if line]


def make_scene(
    name: str,
    *,
    options: Sequence[Mapping[str, Any]] = (),
    content: Sequence[str] | None = None,
    title: str | None = None,
    actions: str | None = None,
) -> dict[str, Any]:
    """Return a minimal scene document."""

    scene: dict[str, Any] = {
        "name": name,
        "title": title or name.capitalize(),
        "content": list(content) if content is not None else [f"You are in {name}."],
        "options": [dict(option) for option in options],
    }
    if actions is not None:
        scene["actions"] = actions
    return scene


def make_adventure(
    name: str,
    scenes: Sequence[Mapping[str, Any]],
    /,
    **fields: Any,
) -> dict[str, Any]:
    """Return a minimal adventure document."""

    document: dict[str, Any] = {
        "title": f"{name.capitalize()} Adventure",
        "name": name,
        "version": 1,
        "scenes": [dict(scene) for scene in scenes],
    }
    document.update(fields)
    return document


@pytest.fixture()
def variables() -> VariableStore:
    return VariableStore()


@pytest.fixture()
def scripted_io() -> ScriptedIO:
    return ScriptedIO()


@pytest.fixture()
def make_engine(scripted_io: ScriptedIO) -> Callable[..., AdventureEngine]:
    """Factory fixture building an engine wired to ``scripted_io``."""

    def _factory(
        documents: Mapping[str, Mapping[str, Any]] | None = None,
        *,
        scene_spacing: int = 0,
        history_capacity: int = 16,
        undefined_placeholder: str | None = None,
    ) -> AdventureEngine:
        settings = EngineSettings(
            history_capacity=history_capacity,
            scene_spacing=scene_spacing,
            undefined_placeholder=undefined_placeholder,
        )
        return AdventureEngine(
            scripted_io.read,
            scripted_io.write,
            settings=settings,
            source=mapping_source(documents or {}),
        )

    return _factory


__all__ = ["ScriptedIO", "make_adventure", "make_scene"]
