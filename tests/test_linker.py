"""Tests for building adventures and linking their scene references."""

from __future__ import annotations

import pytest

from inkspire import (
    ControlScene,
    DocumentError,
    ExpressionSyntaxError,
    LinkError,
    Resolved,
    SceneRegistry,
    Unresolved,
    VariableStore,
    build_adventure,
    link,
)
from inkspire.adventure import control_adventure_document, resolved_scene
from inkspire.linker import iter_unresolved

from conftest import make_adventure, make_scene


@pytest.fixture()
def registry() -> SceneRegistry:
    return SceneRegistry()


def _forward_reference_adventure() -> dict:
    return make_adventure(
        "quest",
        [
            make_scene("start", options=[{"label": "Onwards", "target": "later"}]),
            make_scene(
                "later",
                options=[
                    {"label": "Home", "target": "start"},
                    {"label": "Away", "target": "side:dock"},
                ],
            ),
        ],
    )


def _side_adventure() -> dict:
    return make_adventure(
        "side",
        [make_scene("dock", options=[{"label": "Back", "target": "quest:start"}])],
        startingScene="dock",
    )


def test_builder_registers_scenes_with_namespaced_identifiers(
    variables: VariableStore, registry: SceneRegistry
) -> None:
    adventure = build_adventure(_forward_reference_adventure(), variables, registry)

    assert [scene.name for scene in adventure.scenes] == ["start", "later"]
    assert {str(identifier) for identifier in registry} == {"quest:start", "quest:later"}
    assert all(scene.adventure is adventure for scene in adventure.scenes)


def test_references_are_unresolved_until_linked(
    variables: VariableStore, registry: SceneRegistry
) -> None:
    quest = build_adventure(_forward_reference_adventure(), variables, registry)
    side = build_adventure(_side_adventure(), variables, registry)

    assert isinstance(quest.starting_scene, Unresolved)
    assert isinstance(quest.scenes[0].options[0].target, Unresolved)
    assert not quest.is_linked
    assert len(list(iter_unresolved([quest, side]))) == 6

    resolved = link([quest, side], registry)

    assert resolved == 6
    assert quest.is_linked and side.is_linked
    assert list(iter_unresolved([quest, side])) == []
    start, later = quest.scenes
    assert isinstance(start.options[0].target, Resolved)
    assert start.options[0].target_scene is later
    assert later.options[1].target_scene is side.scenes[0]
    assert side.scenes[0].options[0].target_scene is start
    assert resolved_scene(quest.starting_scene) is start


def test_linking_twice_is_harmless(
    variables: VariableStore, registry: SceneRegistry
) -> None:
    quest = build_adventure(_forward_reference_adventure(), variables, registry)
    build_adventure(_side_adventure(), variables, registry)
    link([quest], registry)
    first_target = quest.scenes[0].options[0].target

    assert link([quest], registry) == 0
    assert quest.scenes[0].options[0].target is first_target


def test_unknown_target_raises_link_error(
    variables: VariableStore, registry: SceneRegistry
) -> None:
    adventure = build_adventure(
        make_adventure(
            "quest",
            [make_scene("start", options=[{"label": "Jump", "target": "nowhere"}])],
        ),
        variables,
        registry,
    )

    with pytest.raises(LinkError) as excinfo:
        link([adventure], registry)

    assert excinfo.value.location == "option"
    assert excinfo.value.context.adventure == "quest"
    assert excinfo.value.context.scene == "start"
    assert excinfo.value.context.option == "Jump"
    assert excinfo.value.context.identifier == "quest:nowhere"


def test_unknown_starting_scene_raises_link_error(
    variables: VariableStore, registry: SceneRegistry
) -> None:
    adventure = build_adventure(
        make_adventure(
            "quest",
            [make_scene("start", options=[{"label": "Stay", "target": "start"}])],
            startingScene="missing",
        ),
        variables,
        registry,
    )

    with pytest.raises(LinkError) as excinfo:
        link([adventure], registry)

    assert excinfo.value.location == "adventure"


def test_unlinked_reference_cannot_be_followed(
    variables: VariableStore, registry: SceneRegistry
) -> None:
    quest = build_adventure(_forward_reference_adventure(), variables, registry)

    with pytest.raises(LinkError):
        quest.scenes[0].options[0].target_scene


def test_duplicate_scene_names_are_rejected_before_registration(
    variables: VariableStore, registry: SceneRegistry
) -> None:
    payload = make_adventure(
        "quest",
        [
            make_scene("start", options=[{"label": "Stay", "target": "start"}]),
            make_scene("start", options=[{"label": "Stay", "target": "start"}]),
        ],
    )

    with pytest.raises(DocumentError) as excinfo:
        build_adventure(payload, variables, registry)

    assert "quest:start" in excinfo.value.message
    assert len(registry) == 0


def test_compile_errors_carry_document_location(
    variables: VariableStore, registry: SceneRegistry
) -> None:
    payload = make_adventure(
        "quest",
        [
            make_scene(
                "start",
                options=[{"label": "Pay", "target": "start", "condition": "gold >"}],
            )
        ],
    )

    with pytest.raises(ExpressionSyntaxError) as excinfo:
        build_adventure(payload, variables, registry)

    assert excinfo.value.location == "option"
    assert excinfo.value.context.scene == "start"
    assert excinfo.value.context.option == "Pay"


def test_compile_errors_do_not_carry_identifiers_from_earlier_options(
    variables: VariableStore, registry: SceneRegistry
) -> None:
    payload = make_adventure(
        "quest",
        [
            make_scene(
                "start",
                options=[
                    {"label": "Stay", "target": "start"},
                    {"label": "Broken ${label", "target": "start"},
                ],
            )
        ],
    )

    with pytest.raises(ExpressionSyntaxError) as excinfo:
        build_adventure(payload, variables, registry)

    assert excinfo.value.context.option == "Broken ${label"
    assert excinfo.value.context.identifier == ""
    assert "identifier=" not in str(excinfo.value)


def test_control_adventure_exposes_every_control_scene(
    variables: VariableStore, registry: SceneRegistry
) -> None:
    control = build_adventure(control_adventure_document(), variables, registry)

    assert {scene.control for scene in control.scenes} == set(ControlScene)
    assert ControlScene.BACK.identifier in registry
    assert str(ControlScene.PASS.identifier) == "inkspire:pass"


def test_payload_dump_uses_identifier_strings(
    variables: VariableStore, registry: SceneRegistry
) -> None:
    quest = build_adventure(_forward_reference_adventure(), variables, registry)
    build_adventure(_side_adventure(), variables, registry)
    link([quest], registry)

    payload = quest.to_payload()

    assert payload["startingScene"] == "quest:start"
    assert payload["scenes"][1]["options"][1]["target"] == "side:dock"
    assert payload["scenes"][0]["content"] == ["You are in start."]
