"""Configuration helpers for the adventure engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from .history import DEFAULT_HISTORY_CAPACITY

DEFAULT_SCENE_SPACING = 11


def _normalise_path(value: str | None) -> Path | None:
    if value is None:
        return None

    trimmed = value.strip()
    if not trimmed:
        return None

    return Path(trimmed).expanduser()


def _parse_int(
    source: Mapping[str, str], name: str, *, default: int, minimum: int
) -> int:
    raw = source.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        parsed = int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer.") from exc
    if parsed < minimum:
        raise ValueError(f"{name} must be at least {minimum}.")
    return parsed


@dataclass(frozen=True)
class EngineSettings:
    """Runtime settings for :class:`~inkspire.engine.AdventureEngine`.

    ``from_env`` reads ``INKSPIRE_*`` environment variables so the engine can
    be tuned without code changes. Empty strings are treated as unset.
    """

    adventure_dir: Path | None = None
    history_capacity: int = DEFAULT_HISTORY_CAPACITY
    scene_spacing: int = DEFAULT_SCENE_SPACING
    undefined_placeholder: str | None = None

    def __post_init__(self) -> None:
        if self.history_capacity < 1:
            raise ValueError("history_capacity must be at least 1.")
        if self.scene_spacing < 0:
            raise ValueError("scene_spacing must be zero or positive.")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "EngineSettings":
        """Return settings populated from ``environ``.

        Args:
            environ: Optional mapping of environment variables. When omitted,
                :data:`os.environ` is used.
        """

        source = environ if environ is not None else os.environ

        return cls(
            adventure_dir=_normalise_path(source.get("INKSPIRE_ADVENTURE_DIR")),
            history_capacity=_parse_int(
                source,
                "INKSPIRE_HISTORY_CAPACITY",
                default=DEFAULT_HISTORY_CAPACITY,
                minimum=1,
            ),
            scene_spacing=_parse_int(
                source,
                "INKSPIRE_SCENE_SPACING",
                default=DEFAULT_SCENE_SPACING,
                minimum=0,
            ),
            # The placeholder is used verbatim so an empty string is meaningful.
            undefined_placeholder=source.get("INKSPIRE_UNDEFINED_PLACEHOLDER"),
        )


__all__ = ["DEFAULT_SCENE_SPACING", "EngineSettings"]
