"""Adventure, scene and option entities compiled from validated documents."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Union

from .actions import Action, parse_actions
from .conditions import Conditional
from .documents import AdventureDocument, SceneDocument, validate_adventure
from .errors import DiagnosticContext, DocumentError, LinkError
from .identifiers import Identifier, parse_identifier
from .text import Text
from .variables import VariableStore

logger = logging.getLogger(__name__)

CONTROL_NAMESPACE = "inkspire"


class ControlScene(str, Enum):
    """Engine-level scenes living in the reserved control namespace."""

    SWITCH = "switch"
    FAIL = "fail"
    PASS = "pass"
    EXIT = "exit"
    BACK = "back"

    @property
    def identifier(self) -> Identifier:
        return Identifier(CONTROL_NAMESPACE, self.value)


@dataclass(frozen=True)
class Unresolved:
    """A scene reference that still names its target by identifier."""

    identifier: Identifier


@dataclass(frozen=True)
class Resolved:
    """A scene reference pointing directly at its target."""

    scene: "Scene"

    @property
    def identifier(self) -> Identifier:
        return self.scene.identifier


SceneRef = Union[Unresolved, Resolved]


def resolved_scene(reference: SceneRef) -> "Scene":
    """Return the scene behind ``reference`` or fail if it was never linked."""

    if isinstance(reference, Resolved):
        return reference.scene
    raise LinkError(
        "identifier",
        f"Scene reference {reference.identifier} has not been linked.",
        context=DiagnosticContext(identifier=str(reference.identifier)),
    )


@dataclass(eq=False)
class Option:
    label: Text
    target: SceneRef
    condition: Conditional | None = None
    always_visible: bool = False
    actions: List[Action] = field(default_factory=list)

    @property
    def target_scene(self) -> "Scene":
        return resolved_scene(self.target)

    def is_available(self) -> bool:
        """Return ``True`` when the option has no condition or it holds."""

        return self.condition is None or self.condition.evaluate()

    def to_payload(self) -> Dict[str, Any]:
        return {
            "label": self.label.source,
            "target": str(self.target.identifier),
            "condition": self.condition.source if self.condition else None,
            "alwaysVisible": self.always_visible,
            "actions": [action.source for action in self.actions],
        }


@dataclass(eq=False)
class Scene:
    identifier: Identifier
    title: Text
    content: List[Text]
    actions: List[Action] = field(default_factory=list)
    options: List[Option] = field(default_factory=list)
    adventure: "Adventure | None" = field(default=None, repr=False)

    @property
    def name(self) -> str:
        return self.identifier.name

    @property
    def control(self) -> ControlScene | None:
        """The control scene this scene stands for, if it is one."""

        if self.identifier.namespace != CONTROL_NAMESPACE:
            return None
        try:
            return ControlScene(self.identifier.name)
        except ValueError:
            return None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "title": self.title.source,
            "actions": [action.source for action in self.actions],
            "content": [paragraph.source for paragraph in self.content],
            "options": [option.to_payload() for option in self.options],
        }


@dataclass(eq=False)
class Adventure:
    name: str
    title: Text
    version: int
    starting_scene: SceneRef
    author: Text | None = None
    requires: tuple[str, ...] = ()
    actions: List[Action] = field(default_factory=list)
    global_top: Text | None = None
    global_bottom: Text | None = None
    scenes: List[Scene] = field(default_factory=list)

    @property
    def is_linked(self) -> bool:
        return isinstance(self.starting_scene, Resolved) and all(
            isinstance(option.target, Resolved)
            for scene in self.scenes
            for option in scene.options
        )

    def to_payload(self) -> Dict[str, Any]:
        """Dump the adventure as plain data, references as identifier strings."""

        return {
            "name": self.name,
            "title": self.title.source,
            "author": self.author.source if self.author else None,
            "version": self.version,
            "requires": list(self.requires),
            "actions": [action.source for action in self.actions],
            "globalTop": self.global_top.source if self.global_top else None,
            "globalBottom": self.global_bottom.source if self.global_bottom else None,
            "startingScene": str(self.starting_scene.identifier),
            "scenes": [scene.to_payload() for scene in self.scenes],
        }


class SceneRegistry:
    """Every scene of a session keyed by its fully-qualified identifier."""

    def __init__(self) -> None:
        self._scenes: Dict[Identifier, Scene] = {}

    def register(self, scene: Scene, context: DiagnosticContext | None = None) -> None:
        if scene.identifier in self._scenes:
            ctx = context or DiagnosticContext(adventure=scene.identifier.namespace)
            ctx.fail(
                "adventure",
                f"Scene identifiers must be unique and {scene.identifier} is not.",
                error_type=DocumentError,
            )
        self._scenes[scene.identifier] = scene

    def resolve(
        self,
        identifier: Identifier,
        context: DiagnosticContext | None = None,
        *,
        location: str = "identifier",
    ) -> Scene:
        scene = self._scenes.get(identifier)
        if scene is None:
            ctx = context or DiagnosticContext()
            ctx.identifier = str(identifier)
            ctx.fail(location, f"Unknown scene {identifier}.", error_type=LinkError)
        return scene

    @property
    def scenes(self) -> Mapping[Identifier, Scene]:
        return MappingProxyType(self._scenes)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._scenes

    def __iter__(self) -> Iterator[Identifier]:
        return iter(self._scenes)

    def __len__(self) -> int:
        return len(self._scenes)


class AdventureBuilder:
    """Compile validated documents into entities bound to one session."""

    def __init__(
        self,
        variables: VariableStore,
        registry: SceneRegistry,
        *,
        undefined_placeholder: str | None = None,
    ) -> None:
        self.variables = variables
        self.registry = registry
        self.undefined_placeholder = undefined_placeholder

    def _text(self, source: str, namespace: str, context: DiagnosticContext) -> Text:
        return Text(
            source,
            self.variables,
            namespace,
            context,
            undefined_placeholder=self.undefined_placeholder,
        )

    def build(self, payload: Mapping[str, Any] | AdventureDocument) -> Adventure:
        document = (
            payload
            if isinstance(payload, AdventureDocument)
            else validate_adventure(payload)
        )
        namespace = document.name
        context = DiagnosticContext(adventure=namespace)

        adventure = Adventure(
            name=namespace,
            title=self._text(document.title, namespace, context),
            version=document.version,
            starting_scene=Unresolved(
                parse_identifier(document.starting_scene, namespace, context)
            ),
            author=(
                self._text(document.author, namespace, context)
                if document.author
                else None
            ),
            requires=tuple(
                name for name in document.requires if name != CONTROL_NAMESPACE
            ),
            actions=parse_actions(document.actions, self.variables, namespace, context),
            global_top=(
                self._text(document.global_top, namespace, context)
                if document.global_top
                else None
            ),
            global_bottom=(
                self._text(document.global_bottom, namespace, context)
                if document.global_bottom
                else None
            ),
        )
        context.identifier = ""

        scenes = [
            self._build_scene(scene_document, adventure, context)
            for scene_document in document.scenes
        ]
        context.scene = context.option = context.identifier = ""

        seen: set[Identifier] = set()
        for scene in scenes:
            if scene.identifier in seen or scene.identifier in self.registry:
                context.fail(
                    "adventure",
                    f"Scene identifiers must be unique and {scene.identifier} is not.",
                    error_type=DocumentError,
                )
            seen.add(scene.identifier)
        for scene in scenes:
            self.registry.register(scene, context)
        adventure.scenes = scenes

        logger.debug(
            "Built adventure %s with %d scene(s)", namespace, len(adventure.scenes)
        )
        return adventure

    def _build_scene(
        self,
        document: SceneDocument,
        adventure: Adventure,
        context: DiagnosticContext,
    ) -> Scene:
        namespace = adventure.name
        context.scene = document.name
        context.option = context.identifier = ""

        scene = Scene(
            identifier=Identifier(namespace, document.name),
            title=self._text(document.title, namespace, context),
            content=[self._text(line, namespace, context) for line in document.content],
            actions=parse_actions(document.actions, self.variables, namespace, context),
            adventure=adventure,
        )
        for option_document in document.options:
            context.option = option_document.label or "(unlabelled)"
            context.identifier = ""
            scene.options.append(
                Option(
                    label=self._text(option_document.label, namespace, context),
                    target=Unresolved(
                        parse_identifier(option_document.target, namespace, context)
                    ),
                    condition=(
                        Conditional(
                            option_document.condition,
                            self.variables,
                            namespace,
                            context,
                        )
                        if option_document.condition
                        else None
                    ),
                    always_visible=option_document.always_visible,
                    actions=parse_actions(
                        option_document.actions, self.variables, namespace, context
                    ),
                )
            )
        context.option = ""
        return scene


def build_adventure(
    payload: Mapping[str, Any] | AdventureDocument,
    variables: VariableStore,
    registry: SceneRegistry,
    *,
    undefined_placeholder: str | None = None,
) -> Adventure:
    """Compile one adventure document and register its scenes."""

    builder = AdventureBuilder(
        variables, registry, undefined_placeholder=undefined_placeholder
    )
    return builder.build(payload)


def control_adventure_document() -> Dict[str, Any]:
    """The built-in adventure that owns the control scenes."""

    return {
        "title": "Inkspire System",
        "name": CONTROL_NAMESPACE,
        "author": "Inkspire",
        "version": 1,
        "startingScene": ControlScene.EXIT.value,
        "scenes": [
            {
                "title": f"{member.value.capitalize()} Control Scene",
                "name": member.value,
                "content": [f"Control scene {member.value}."],
                "options": [],
            }
            for member in ControlScene
        ],
    }


__all__ = [
    "Adventure",
    "AdventureBuilder",
    "CONTROL_NAMESPACE",
    "ControlScene",
    "Option",
    "Resolved",
    "Scene",
    "SceneRef",
    "SceneRegistry",
    "Unresolved",
    "build_adventure",
    "control_adventure_document",
    "resolved_scene",
]
