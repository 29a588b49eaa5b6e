"""Tests for loading, linking and playing adventures with the engine."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable

import pytest

from inkspire import (
    AdventureEngine,
    DocumentError,
    LinkError,
    TraversalError,
    TraversalOutcome,
)
from inkspire.engine import CHOICE_PROMPT, CONTINUE_PROMPT, partition_options
from inkspire.loader import bundled_source

from conftest import ScriptedIO, make_adventure, make_scene

EngineFactory = Callable[..., AdventureEngine]


def _quest() -> dict[str, Any]:
    return make_adventure(
        "quest",
        [
            make_scene(
                "start",
                title="Start",
                content=["Hello, you have ${gold} gold."],
                options=[
                    {"label": "Take the coin", "target": "hall", "actions": "gold += 1"},
                    {
                        "label": "Open the vault",
                        "target": "inkspire:pass",
                        "condition": "gold >= 10",
                        "alwaysVisible": True,
                    },
                    {
                        "label": "Whisper the secret",
                        "target": "inkspire:fail",
                        "condition": "gold >= 100",
                    },
                    {"label": "Leave", "target": "inkspire:exit"},
                ],
            ),
            make_scene(
                "hall",
                title="Hall",
                actions="visits += 1",
                content=["Visit number ${visits}."],
                options=[{"label": "Go back", "target": "inkspire:back"}],
            ),
        ],
        actions="gold = 5; visits = 0",
    )


def _single_option_adventure(target: str, label: str = "Accept your fate") -> dict:
    return make_adventure(
        "fate",
        [make_scene("start", title="Fate", options=[{"label": label, "target": target}])],
    )


def _play(
    make_engine: EngineFactory,
    scripted_io: ScriptedIO,
    document: dict[str, Any],
    *inputs: str,
    **settings: Any,
) -> TraversalOutcome:
    engine = make_engine(**settings)
    engine.load_mapping(document)
    engine.link()
    scripted_io.queue(*inputs)
    return engine.run(document["name"])


def test_only_available_options_are_numbered(
    make_engine: EngineFactory, scripted_io: ScriptedIO
) -> None:
    outcome = _play(make_engine, scripted_io, _quest(), "2")

    assert outcome is TraversalOutcome.EXITED
    assert scripted_io.lines == [
        "Start",
        "Hello, you have 5 gold.",
        "",
        "You could...",
        "1: Take the coin",
        "2: Leave",
        "X: Open the vault",
        "",
        CHOICE_PROMPT,
        "Program terminated",
    ]
    assert "Whisper the secret" not in scripted_io.text


def test_invalid_choices_prompt_again(
    make_engine: EngineFactory, scripted_io: ScriptedIO
) -> None:
    outcome = _play(make_engine, scripted_io, _quest(), "abc", "7", "0", " 2 ")

    assert outcome is TraversalOutcome.EXITED
    hint = "Select one of the options by entering a number from 1 to 2."
    assert scripted_io.lines.count(hint) == 3
    assert scripted_io.lines.count(CHOICE_PROMPT) == 4


def test_single_option_waits_for_enter(
    make_engine: EngineFactory, scripted_io: ScriptedIO
) -> None:
    outcome = _play(
        make_engine,
        scripted_io,
        _single_option_adventure("inkspire:pass", "Win the game"),
        "anything",
    )

    assert outcome is TraversalOutcome.PASSED
    assert scripted_io.lines[-3:] == ["You win the game", CONTINUE_PROMPT, "You win"]
    assert scripted_io.reads == 1


def test_fail_control_scene(make_engine: EngineFactory, scripted_io: ScriptedIO) -> None:
    outcome = _play(
        make_engine, scripted_io, _single_option_adventure("inkspire:fail"), ""
    )

    assert outcome is TraversalOutcome.FAILED
    assert scripted_io.lines[-1] == "You failed"


def test_switch_control_scene_is_unsupported(
    make_engine: EngineFactory, scripted_io: ScriptedIO
) -> None:
    with pytest.raises(TraversalError):
        _play(
            make_engine, scripted_io, _single_option_adventure("inkspire:switch"), ""
        )


def test_option_and_scene_actions_run_on_traversal(
    make_engine: EngineFactory, scripted_io: ScriptedIO
) -> None:
    engine = make_engine()
    engine.load_mapping(_quest())
    engine.link()
    scripted_io.queue("1", "", "2")

    outcome = engine.run("quest")

    assert outcome is TraversalOutcome.EXITED
    assert engine.variables["quest:gold"] == 6
    assert engine.variables["quest:visits"] == 1
    assert "Visit number 1." in scripted_io.lines
    assert "You go back" in scripted_io.lines


def test_back_returns_to_previous_scene(
    make_engine: EngineFactory, scripted_io: ScriptedIO
) -> None:
    _play(make_engine, scripted_io, _quest(), "1", "", "2")

    assert scripted_io.lines.count("Start") == 2
    assert "Hello, you have 6 gold." in scripted_io.lines


def test_back_with_empty_history_restarts_adventure(
    make_engine: EngineFactory,
    scripted_io: ScriptedIO,
    caplog: pytest.LogCaptureFixture,
) -> None:
    document = make_adventure(
        "loop",
        [
            make_scene(
                "start",
                title="Loop",
                options=[
                    {"label": "Retreat", "target": "inkspire:back"},
                    {"label": "Quit", "target": "inkspire:exit"},
                ],
            )
        ],
    )

    with caplog.at_level(logging.WARNING, logger="inkspire.engine"):
        outcome = _play(make_engine, scripted_io, document, "1", "2")

    assert outcome is TraversalOutcome.EXITED
    assert scripted_io.lines.count("Loop") == 2
    assert "History is empty" in caplog.text


def test_back_as_starting_scene_is_a_traversal_error(
    make_engine: EngineFactory, scripted_io: ScriptedIO
) -> None:
    document = make_adventure(
        "loop",
        [make_scene("start", options=[{"label": "Quit", "target": "inkspire:exit"}])],
        startingScene="inkspire:back",
    )

    with pytest.raises(TraversalError, match="inkspire:back"):
        _play(make_engine, scripted_io, document)

    assert scripted_io.reads == 0


def test_history_capacity_limits_how_far_back_goes(
    make_engine: EngineFactory, scripted_io: ScriptedIO
) -> None:
    def floor(name: str, up: str, down: str) -> dict[str, Any]:
        return make_scene(
            name,
            title=name.capitalize(),
            options=[{"label": "Up", "target": up}, {"label": "Down", "target": down}],
        )

    document = make_adventure(
        "tower",
        [
            floor("ground", "first", "inkspire:exit"),
            floor("first", "second", "inkspire:back"),
            floor("second", "second", "inkspire:back"),
        ],
        startingScene="ground",
    )

    # Only "first" is remembered once "second" is reached.
    outcome = _play(
        make_engine,
        scripted_io,
        document,
        "1",
        "1",
        "2",
        "2",
        "2",
        history_capacity=1,
    )

    assert outcome is TraversalOutcome.EXITED
    titles = [line for line in scripted_io.lines if line in {"Ground", "First", "Second"}]
    assert titles == ["Ground", "First", "Second", "First", "Ground"]


def test_scene_without_options_is_a_traversal_error(
    make_engine: EngineFactory, scripted_io: ScriptedIO
) -> None:
    document = make_adventure("stuck", [make_scene("start")])

    with pytest.raises(TraversalError):
        _play(make_engine, scripted_io, document)


def test_scene_without_available_options_is_a_traversal_error(
    make_engine: EngineFactory, scripted_io: ScriptedIO
) -> None:
    document = make_adventure(
        "stuck",
        [
            make_scene(
                "start",
                options=[
                    {"label": "A", "target": "start", "condition": "1 > 2"},
                    {"label": "B", "target": "start", "condition": "2 > 3"},
                ],
            )
        ],
    )

    with pytest.raises(TraversalError):
        _play(make_engine, scripted_io, document)


def test_scene_layout_with_spacing_and_global_text(
    make_engine: EngineFactory, scripted_io: ScriptedIO
) -> None:
    document = _single_option_adventure("inkspire:exit", "Leave")
    document["globalTop"] = "== ${gold} gold =="
    document["globalBottom"] = "?{gold > 100?You are rich.}"
    document["actions"] = "gold = 3"

    _play(make_engine, scripted_io, document, "", scene_spacing=2)

    assert scripted_io.lines[:7] == [
        "",
        "",
        "Fate",
        "== 3 gold ==",
        "You are in start.",
        "",
        "You leave",
    ]


def test_header_and_footer_lines_are_written_even_when_empty(
    make_engine: EngineFactory, scripted_io: ScriptedIO
) -> None:
    document = _single_option_adventure("inkspire:exit", "Leave")
    document["globalTop"] = "?{flag = 1?HEADER}"
    document["globalBottom"] = "?{flag = 1?FOOTER}"
    document["actions"] = "flag = 0"
    document["scenes"][0]["content"] = ["First.", "?{flag = 1?Hidden.}", "Last."]

    _play(make_engine, scripted_io, document, "")

    assert scripted_io.lines[:5] == ["Fate", "", "First.", "Last.", ""]


def test_undefined_placeholder_setting_reaches_templates(
    make_engine: EngineFactory, scripted_io: ScriptedIO
) -> None:
    document = _single_option_adventure("inkspire:exit", "Leave")
    document["scenes"][0]["content"] = ["Gold: ${gold}"]

    _play(make_engine, scripted_io, document, "", undefined_placeholder="??")

    assert "Gold: ??" in scripted_io.lines


def test_unknown_adventure_is_reported(
    make_engine: EngineFactory, scripted_io: ScriptedIO
) -> None:
    engine = make_engine()
    engine.link()

    assert engine.run("missing") is TraversalOutcome.NOT_FOUND
    assert scripted_io.lines == ["FAIL: No adventure named missing is loaded."]


def test_running_before_linking_is_rejected(
    make_engine: EngineFactory, scripted_io: ScriptedIO
) -> None:
    engine = make_engine()
    engine.load_mapping(_quest())

    assert not engine.is_linked
    with pytest.raises(TraversalError):
        engine.run("quest")


def test_load_time_actions_run_once(make_engine: EngineFactory) -> None:
    engine = make_engine()
    engine.load_mapping(_quest())

    engine.link()
    assert engine.variables["quest:gold"] == 5

    engine.variables["quest:gold"] = 7
    engine.link()
    assert engine.variables["quest:gold"] == 7


def test_link_errors_surface_from_engine(make_engine: EngineFactory) -> None:
    engine = make_engine()
    engine.load_mapping(_single_option_adventure("nowhere"))

    with pytest.raises(LinkError):
        engine.link()


def test_cyclic_requires_load_each_adventure_once(make_engine: EngineFactory) -> None:
    documents = {
        "north": make_adventure(
            "north",
            [make_scene("hub", options=[{"label": "South", "target": "south:hub"}])],
            startingScene="hub",
            requires="south",
        ),
        "south": make_adventure(
            "south",
            [make_scene("hub", options=[{"label": "North", "target": "north:hub"}])],
            startingScene="hub",
            requires=["north"],
        ),
    }
    engine = make_engine(documents)

    engine.require("north")
    engine.link()

    assert [name for name in engine.adventures if name != "inkspire"] == ["north", "south"]
    assert engine.is_linked
    north_hub = engine.adventures["north"].scenes[0]
    assert north_hub.options[0].target_scene is engine.adventures["south"].scenes[0]


def test_require_rejects_mismatched_names(make_engine: EngineFactory) -> None:
    engine = make_engine({"north": make_adventure("south", [make_scene("start")])})

    with pytest.raises(DocumentError):
        engine.require("north")


def test_missing_requirement_is_a_document_error(make_engine: EngineFactory) -> None:
    engine = make_engine()

    with pytest.raises(DocumentError):
        engine.load_mapping(
            make_adventure("quest", [make_scene("start")], requires="absent")
        )


def test_loading_the_same_adventure_twice_fails(make_engine: EngineFactory) -> None:
    engine = make_engine()
    engine.load_mapping(_quest())

    with pytest.raises(DocumentError):
        engine.load_mapping(_quest())


def test_load_file_resolves_requirements_next_to_the_file(
    tmp_path, scripted_io: ScriptedIO
) -> None:
    (tmp_path / "main.json").write_text(
        json.dumps(
            make_adventure(
                "main",
                [make_scene("start", options=[{"label": "Go", "target": "side:dock"}])],
                requires="side",
            )
        )
    )
    (tmp_path / "side.json").write_text(
        json.dumps(
            make_adventure(
                "side",
                [make_scene("dock", options=[{"label": "Done", "target": "inkspire:exit"}])],
                startingScene="dock",
            )
        )
    )
    engine = AdventureEngine(scripted_io.read, scripted_io.write)

    adventure = engine.load_file(tmp_path / "main.json")
    engine.link()

    assert adventure.name == "main"
    assert "side" in engine.adventures


def test_partition_options_keeps_order(make_engine: EngineFactory) -> None:
    engine = make_engine()
    adventure = engine.load_mapping(_quest())
    engine.link()

    available, unavailable = partition_options(adventure.scenes[0].options)

    assert [option.label.render() for option in available] == ["Take the coin", "Leave"]
    assert [option.label.render() for option in unavailable] == [
        "Open the vault",
        "Whisper the secret",
    ]


def test_bundled_demo_can_be_won(scripted_io: ScriptedIO) -> None:
    engine = AdventureEngine(scripted_io.read, scripted_io.write, source=bundled_source)
    engine.load_mapping(bundled_source("demo"), source=bundled_source)
    engine.link()
    # stairs, back, cellar, search, climb, stairs, light the lamp
    scripted_io.queue("1", "1", "2", "1", "1", "1", "1")

    outcome = engine.run("demo")

    assert outcome is TraversalOutcome.PASSED
    assert "cellar" in engine.adventures
    assert "You have stood here 3 times now." in scripted_io.lines
    assert "X: Wade into the dark" in scripted_io.lines
    assert engine.variables["demo:coins"] == 2
