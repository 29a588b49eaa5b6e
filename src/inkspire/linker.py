"""Resolve scene identifiers into direct references once loading is done."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Tuple

from .adventure import Adventure, Option, Resolved, SceneRegistry, Unresolved
from .errors import DiagnosticContext

logger = logging.getLogger(__name__)


def link(adventures: Iterable[Adventure], registry: SceneRegistry) -> int:
    """Replace every :class:`Unresolved` reference with a :class:`Resolved` one.

    Covers each adventure's starting scene and the target of every option of
    every scene. References that are already resolved are left alone, so
    running the pass twice is harmless.

    Returns:
        The number of references resolved by this call.

    Raises:
        LinkError: if an identifier does not name a registered scene.
    """

    resolved = 0
    for adventure in adventures:
        context = DiagnosticContext(adventure=adventure.name)
        if isinstance(adventure.starting_scene, Unresolved):
            scene = registry.resolve(
                adventure.starting_scene.identifier, context, location="adventure"
            )
            adventure.starting_scene = Resolved(scene)
            resolved += 1

        for scene in adventure.scenes:
            context.scene = scene.name
            for option in scene.options:
                if isinstance(option.target, Resolved):
                    continue
                context.option = option.label.source or "(unlabelled)"
                option.target = Resolved(
                    registry.resolve(option.target.identifier, context, location="option")
                )
                resolved += 1
            context.option = ""

    logger.debug("Linked %d scene reference(s)", resolved)
    return resolved


def iter_unresolved(
    adventures: Iterable[Adventure],
) -> Iterator[Tuple[Adventure, Option | None]]:
    """Yield ``(adventure, option)`` pairs whose reference is still unresolved.

    ``option`` is ``None`` when the adventure's starting scene is the culprit.
    """

    for adventure in adventures:
        if isinstance(adventure.starting_scene, Unresolved):
            yield adventure, None
        for scene in adventure.scenes:
            for option in scene.options:
                if isinstance(option.target, Unresolved):
                    yield adventure, option


__all__ = ["iter_unresolved", "link"]
