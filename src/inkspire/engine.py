"""Turn-based traversal of linked adventures."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Set, Tuple

from .actions import run_actions
from .adventure import (
    Adventure,
    AdventureBuilder,
    ControlScene,
    Option,
    Scene,
    SceneRegistry,
    control_adventure_document,
    resolved_scene,
)
from .errors import DocumentError, TraversalError
from .history import BoundedHistory
from .linker import iter_unresolved, link
from .loader import DocumentSource, directory_source, read_document
from .settings import EngineSettings
from .text import render_all
from .variables import VariableStore

logger = logging.getLogger(__name__)

ReadLine = Callable[[], str]
WriteLine = Callable[[str], None]

FAIL_MESSAGE = "You failed"
PASS_MESSAGE = "You win"
EXIT_MESSAGE = "Program terminated"
CONTINUE_PROMPT = "Press enter to continue..."
CHOICE_HEADER = "You could..."
CHOICE_PROMPT = "What do you do?"
UNAVAILABLE_MARKER = "X"


class TraversalOutcome(str, Enum):
    """How a call to :meth:`AdventureEngine.run` ended."""

    PASSED = "passed"
    FAILED = "failed"
    EXITED = "exited"
    NOT_FOUND = "not_found"


class AdventureEngine:
    """Load, link and play adventures against one shared variable store.

    ``read`` blocks until the player submits a line; ``write`` displays one
    line. The engine never touches the console itself.
    """

    def __init__(
        self,
        read: ReadLine,
        write: WriteLine,
        *,
        settings: EngineSettings | None = None,
        source: DocumentSource | None = None,
    ) -> None:
        self.read = read
        self.write = write
        self.settings = settings or EngineSettings()
        self.variables = VariableStore()
        self.registry = SceneRegistry()
        self._builder = AdventureBuilder(
            self.variables,
            self.registry,
            undefined_placeholder=self.settings.undefined_placeholder,
        )
        if source is None and self.settings.adventure_dir is not None:
            source = directory_source(self.settings.adventure_dir)
        self._source = source
        self._adventures: Dict[str, Adventure] = {}
        self._initialised: Set[str] = set()

        self._register(self._builder.build(control_adventure_document()))

    @property
    def adventures(self) -> Mapping[str, Adventure]:
        """Return a read-only view of the loaded adventures."""

        return MappingProxyType(self._adventures)

    def _register(self, adventure: Adventure) -> Adventure:
        if adventure.name in self._adventures:
            raise DocumentError(
                "adventure",
                f"An adventure with the name {adventure.name} is already loaded.",
            )
        self._adventures[adventure.name] = adventure
        return adventure

    def load_mapping(
        self,
        payload: Mapping[str, Any],
        *,
        source: DocumentSource | None = None,
    ) -> Adventure:
        """Compile ``payload`` and then load its requirements depth-first."""

        name = payload.get("name") if isinstance(payload, Mapping) else None
        if isinstance(name, str) and name in self._adventures:
            raise DocumentError(
                "adventure", f"An adventure with the name {name} is already loaded."
            )
        adventure = self._register(self._builder.build(payload))
        logger.debug("Loaded adventure %s", adventure.name)

        for required in adventure.requires:
            self.require(required, source=source)
        return adventure

    def load_file(self, path: str | Path) -> Adventure:
        """Load the adventure stored at ``path`` together with its requirements.

        Requirements are looked up through the configured source or, when none
        was configured, next to ``path``.
        """

        data_path = Path(path)
        source = self._source or directory_source(data_path.parent)
        return self.load_mapping(read_document(data_path), source=source)

    def require(self, name: str, *, source: DocumentSource | None = None) -> Adventure:
        """Ensure the adventure ``name`` is loaded.

        Requests for an adventure that is already loaded, including one that
        is still loading its own requirements, return it unchanged so cyclic
        ``requires`` declarations are safe.
        """

        loaded = self._adventures.get(name)
        if loaded is not None:
            return loaded

        resolver = source or self._source
        if resolver is None:
            raise DocumentError(
                "adventure",
                f"Cannot load required adventure {name}: no adventure source is configured.",
            )

        logger.debug("Loading required adventure %s", name)
        payload = resolver(name)
        declared = payload.get("name")
        if declared != name:
            raise DocumentError(
                "adventure",
                f"Required adventure {name} declares the name {declared!r}.",
            )
        return self.load_mapping(payload, source=resolver)

    def link(self) -> None:
        """Resolve every scene reference, then run pending load-time actions."""

        link(self._adventures.values(), self.registry)
        for adventure in self._adventures.values():
            if adventure.name in self._initialised:
                continue
            run_actions(adventure.actions)
            self._initialised.add(adventure.name)

    @property
    def is_linked(self) -> bool:
        return next(iter_unresolved(self._adventures.values()), None) is None

    def run(self, adventure_name: str) -> TraversalOutcome:
        """Play ``adventure_name`` from its starting scene until it ends."""

        adventure = self._adventures.get(adventure_name)
        if adventure is None:
            self.write(f"FAIL: No adventure named {adventure_name} is loaded.")
            return TraversalOutcome.NOT_FOUND
        if not self.is_linked:
            raise TraversalError("Adventures must be linked before they can be run.")

        history: BoundedHistory[Scene] = BoundedHistory(self.settings.history_capacity)
        scene = resolved_scene(adventure.starting_scene)

        while True:
            control = scene.control
            if control is ControlScene.BACK:
                scene = self._go_back(history, adventure)
                continue
            if control is not None:
                return self._finish(control)

            logger.debug("Entering scene %s", scene.identifier)
            self._render_scene(scene)
            option = self._choose_option(scene)
            run_actions(option.actions)
            target = option.target_scene
            if target.control is not ControlScene.BACK:
                history.push(scene)
            scene = target

    def _go_back(self, history: BoundedHistory[Scene], adventure: Adventure) -> Scene:
        if history:
            scene = history.pop()
            logger.debug("Going back to scene %s", scene.identifier)
            return scene
        start = resolved_scene(adventure.starting_scene)
        if start.control is ControlScene.BACK:
            raise TraversalError(
                f"Starting scene of {adventure.name} cannot be {start.identifier}."
            )
        logger.warning(
            "History is empty; returning to the starting scene of %s", adventure.name
        )
        return start

    def _finish(self, control: ControlScene) -> TraversalOutcome:
        if control is ControlScene.SWITCH:
            raise TraversalError("Switching adventures is not implemented.")
        if control is ControlScene.FAIL:
            self.write(FAIL_MESSAGE)
            return TraversalOutcome.FAILED
        if control is ControlScene.PASS:
            self.write(PASS_MESSAGE)
            return TraversalOutcome.PASSED
        self.write(EXIT_MESSAGE)
        return TraversalOutcome.EXITED

    def _render_scene(self, scene: Scene) -> None:
        run_actions(scene.actions)

        for _ in range(self.settings.scene_spacing):
            self.write("")

        adventure = scene.adventure
        lines: List[str] = [scene.title.render()]
        if adventure is not None and adventure.global_top is not None:
            lines.append(adventure.global_top.render())
        lines.extend(render_all(scene.content))
        if adventure is not None and adventure.global_bottom is not None:
            lines.append(adventure.global_bottom.render())
        for line in lines:
            self.write(line)

    def _choose_option(self, scene: Scene) -> Option:
        options = scene.options
        if not options:
            raise TraversalError(f"Scene {scene.identifier} has no options.")

        if len(options) == 1:
            option = options[0]
            label = option.label.render()
            if label:
                self.write("You " + label[0].lower() + label[1:])
            self.write(CONTINUE_PROMPT)
            self.read()
            return option

        available, unavailable = partition_options(options)
        if not available:
            raise TraversalError(f"Scene {scene.identifier} has no available options.")

        self.write("")
        self.write(CHOICE_HEADER)
        for number, option in enumerate(available, start=1):
            self.write(f"{number}: {option.label.render()}")
        for option in unavailable:
            if option.always_visible:
                self.write(f"{UNAVAILABLE_MARKER}: {option.label.render()}")
        self.write("")

        return available[self._read_choice(len(available)) - 1]

    def _read_choice(self, count: int) -> int:
        while True:
            self.write(CHOICE_PROMPT)
            response = self.read().strip()
            try:
                choice = int(response)
            except ValueError:
                choice = 0
            if 1 <= choice <= count:
                return choice
            self.write(
                f"Select one of the options by entering a number from 1 to {count}."
            )


def partition_options(options: List[Option]) -> Tuple[List[Option], List[Option]]:
    """Split ``options`` into ``(available, unavailable)`` keeping their order."""

    available: List[Option] = []
    unavailable: List[Option] = []
    for option in options:
        (available if option.is_available() else unavailable).append(option)
    return available, unavailable


__all__ = [
    "AdventureEngine",
    "CHOICE_HEADER",
    "CHOICE_PROMPT",
    "CONTINUE_PROMPT",
    "EXIT_MESSAGE",
    "FAIL_MESSAGE",
    "PASS_MESSAGE",
    "ReadLine",
    "TraversalOutcome",
    "WriteLine",
    "partition_options",
]
