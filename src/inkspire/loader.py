"""Read adventure documents from disk or from the bundled package data."""

from __future__ import annotations

import json
import logging
from importlib import resources
from pathlib import Path
from typing import Any, Callable, Mapping

from .errors import DocumentError

logger = logging.getLogger(__name__)

ADVENTURE_FILE_EXTENSION = ".json"
BUNDLED_PACKAGE = "inkspire.data"
DEFAULT_ADVENTURE = "demo"

DocumentSource = Callable[[str], Mapping[str, Any]]
"""Callable returning the raw document of the adventure with the given name."""


def _decode(raw_data: Any, origin: str) -> Mapping[str, Any]:
    if not isinstance(raw_data, Mapping):
        raise DocumentError(
            "adventure",
            f"Adventure file '{origin}' must contain an object at the top level.",
        )
    return raw_data


def read_document(path: str | Path) -> Mapping[str, Any]:
    """Load one adventure document from a JSON file on disk."""

    data_path = Path(path)
    logger.debug("Reading adventure document %s", data_path)
    with data_path.open("r", encoding="utf-8") as handle:
        try:
            raw_data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise DocumentError(
                "adventure", f"Adventure file '{data_path}' is not valid JSON: {exc}"
            ) from exc
    return _decode(raw_data, str(data_path))


def directory_source(directory: str | Path) -> DocumentSource:
    """Return a source resolving ``name`` to ``<directory>/<name>.json``."""

    root = Path(directory)

    def _load(name: str) -> Mapping[str, Any]:
        path = root / f"{name}{ADVENTURE_FILE_EXTENSION}"
        try:
            return read_document(path)
        except FileNotFoundError:
            raise DocumentError(
                "adventure", f"Required adventure {name} was not found at '{path}'."
            ) from None

    return _load


def bundled_source(name: str) -> Mapping[str, Any]:
    """Load an adventure shipped inside the :mod:`inkspire.data` package."""

    data_resource = resources.files(BUNDLED_PACKAGE).joinpath(
        f"{name}{ADVENTURE_FILE_EXTENSION}"
    )
    with data_resource.open("r", encoding="utf-8") as handle:
        raw_data = json.load(handle)
    return _decode(raw_data, f"{BUNDLED_PACKAGE}/{name}{ADVENTURE_FILE_EXTENSION}")


def mapping_source(documents: Mapping[str, Mapping[str, Any]]) -> DocumentSource:
    """Serve documents from an in-memory ``{name: document}`` mapping."""

    def _load(name: str) -> Mapping[str, Any]:
        try:
            return documents[name]
        except KeyError:
            raise DocumentError(
                "adventure", f"No adventure document named {name} is available."
            ) from None

    return _load


__all__ = [
    "ADVENTURE_FILE_EXTENSION",
    "DEFAULT_ADVENTURE",
    "DocumentSource",
    "bundled_source",
    "directory_source",
    "mapping_source",
    "read_document",
]
