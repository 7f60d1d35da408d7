"""End-to-end tests for the swing engine."""

from __future__ import annotations

import pytest

from beatsaber_parity.config import AnalysisConfig
from beatsaber_parity.data.beatmap import (
    BombNote,
    BurstSlider,
    ColorNote,
    MapObjects,
    Obstacle,
    Slider,
    parse_difficulty_dat_json,
)
from beatsaber_parity.data.timing import TimeDomain
from beatsaber_parity.parity.directions import CutDirection, Parity
from beatsaber_parity.parity.engine import SwingEngine, predict_swings
from beatsaber_parity.parity.methods import ExperimentalParityCheck, RetroParityCheck
from beatsaber_parity.parity.swing import ResetType, SwingType

TD = TimeDomain(120.0)

UP = CutDirection.UP
DOWN = CutDirection.DOWN


def _note(beat: float, x: int, y: int, d: int, color: int = 1) -> ColorNote:
    return ColorNote(beat=beat, x=x, y=y, color=color, direction=d)


def _alternating(color: int, count: int = 8) -> list[ColorNote]:
    return [_note(float(i), 1 + color, 0, DOWN if i % 2 == 0 else UP, color) for i in range(count)]


@pytest.fixture
def bomb_reset_map() -> MapObjects:
    """Two right-hand down hits with a bomb under the hand in between."""
    return MapObjects(
        color_notes=(_note(0.0, 1, 0, DOWN), _note(2.0, 1, 0, DOWN)),
        bomb_notes=(BombNote(1.0, 1, 0),),
    )


def test_empty_map() -> None:
    container = SwingEngine().run(MapObjects(), TD)
    assert len(container) == 0
    assert predict_swings(MapObjects(), TD) == []


def test_alternating_hits_flip_parity() -> None:
    objects = MapObjects(color_notes=tuple(_alternating(1)))
    swings = predict_swings(objects, TD)
    assert len(swings) == 8
    assert [s.parity for s in swings[:4]] == [
        Parity.FOREHAND,
        Parity.BACKHAND,
        Parity.FOREHAND,
        Parity.BACKHAND,
    ]
    assert all(s.reset_type is ResetType.NONE for s in swings)
    assert all(s.right_hand for s in swings)


def test_one_hand_only() -> None:
    objects = MapObjects(color_notes=tuple(_alternating(0, 4)))
    container = SwingEngine().run(objects, TD)
    assert len(container.left) == 4
    assert len(container.right) == 0


def test_bomb_reset_gets_a_filler(bomb_reset_map: MapObjects) -> None:
    swings = predict_swings(bomb_reset_map, TD)
    assert len(swings) == 3
    first, filler, reset = swings

    assert reset.reset_type is ResetType.BOMB
    assert reset.parity is first.parity
    assert filler.is_filler
    assert first.start_beat < filler.start_beat < reset.start_beat


@pytest.mark.parametrize("method", ["generic", "experimental", "retro"])
def test_every_reset_follows_a_filler(bomb_reset_map: MapObjects, method: str) -> None:
    container = SwingEngine(method).run(bomb_reset_map, TD)
    for hand in (container.right_hand_swings, container.left_hand_swings):
        for prev, record in zip(hand, hand[1:]):
            if record.is_reset:
                assert prev.is_filler
        assert not hand or not hand[0].is_reset


def test_bomb_outside_the_gap_is_ignored() -> None:
    objects = MapObjects(
        color_notes=(_note(0.0, 1, 0, DOWN), _note(2.0, 1, 0, DOWN)),
        bomb_notes=(BombNote(3.0, 1, 0),),
    )
    swings = predict_swings(objects, TD)
    assert len(swings) == 2
    assert swings[1].reset_type is ResetType.NONE


def test_merged_output_is_chronological() -> None:
    objects = MapObjects(
        color_notes=tuple(_alternating(0) + _alternating(1)),
        bomb_notes=(BombNote(2.5, 3, 2),),
    )
    swings = predict_swings(objects, TD)
    beats = [s.start_beat for s in swings]
    assert beats == sorted(beats)
    # Doubles put the right hand first
    assert swings[0].right_hand and not swings[1].right_hand


def test_rerun_is_deterministic(bomb_reset_map: MapObjects) -> None:
    engine = SwingEngine()
    assert engine.run(bomb_reset_map, TD).merged() == engine.run(bomb_reset_map, TD).merged()


def test_close_notes_form_one_slider() -> None:
    objects = MapObjects(color_notes=(_note(10.0, 1, 2, DOWN), _note(10.02, 1, 1, DOWN)))
    swings = predict_swings(objects, TD)
    assert len(swings) == 1
    assert swings[0].swing_type is SwingType.SLIDER
    assert swings[0].start_beat == 10.0
    assert swings[0].end_beat == 10.02


def test_chain_becomes_a_swing() -> None:
    chain = BurstSlider(
        color=1, beat=1.0, x=1, y=2, direction=DOWN, tail_beat=1.5, tail_x=1, tail_y=0
    )
    objects = MapObjects(color_notes=(_note(0.0, 1, 0, UP),), burst_sliders=(chain,))
    swings = predict_swings(objects, TD)
    assert [s.swing_type for s in swings] == [SwingType.NORMAL, SwingType.CHAIN]
    assert swings[1].end_beat == 1.5


def test_arcs_do_not_create_swings() -> None:
    arc = Slider(
        color=1,
        beat=0.0,
        x=1,
        y=0,
        direction=DOWN,
        mu=1.0,
        tail_beat=1.0,
        tail_x=1,
        tail_y=2,
        tail_direction=UP,
        tail_mu=1.0,
    )
    objects = MapObjects(color_notes=(_note(0.0, 1, 0, DOWN),), sliders=(arc,))
    assert len(predict_swings(objects, TD)) == 1


def test_dodge_wall_sets_lateral_offset() -> None:
    objects = MapObjects(
        color_notes=tuple(_alternating(1, 4)),
        obstacles=(Obstacle(beat=0.0, duration=1.0, x=1, y=0, width=1, height=5),),
    )
    swings = predict_swings(objects, TD)
    # Wall ends at 0.5 s; the player is back by 0.85 s (beat 1.7)
    assert [s.lateral_offset for s in swings] == [1, 1, 0, 0]


def test_method_selection() -> None:
    assert isinstance(SwingEngine("retro").method, RetroParityCheck)
    config = AnalysisConfig(parity_method="experimental")
    assert isinstance(SwingEngine(config=config).method, ExperimentalParityCheck)
    method = RetroParityCheck()
    assert SwingEngine(method).method is method


def test_unknown_method_rejected() -> None:
    with pytest.raises(ValueError):
        SwingEngine("absolute")


def test_parsed_map_runs_end_to_end() -> None:
    data = {
        "version": "3.3.0",
        "colorNotes": [
            {"b": 1.0, "x": 1, "y": 0, "c": 0, "d": 1},
            {"b": 1.0, "x": 2, "y": 0, "c": 1, "d": 1},
            {"b": 2.0, "x": 1, "y": 1, "c": 0, "d": 0},
            {"b": 2.0, "x": 2, "y": 1, "c": 1, "d": 0},
        ],
    }
    objects = parse_difficulty_dat_json(data)
    assert objects is not None
    swings = predict_swings(objects, TD, method="generic")
    assert len(swings) == 4
    assert [s.right_hand for s in swings] == [True, False, True, False]
    assert all(s.ebpm == pytest.approx(60.0) for s in swings[2:])


def test_chain_on_a_colour_note_is_one_swing() -> None:
    data = {
        "version": "3.3.0",
        "colorNotes": [
            {"b": 0.0, "x": 1, "y": 0, "c": 1, "d": 0},
            {"b": 1.0, "x": 1, "y": 2, "c": 1, "d": 1},
            {"b": 2.0, "x": 1, "y": 0, "c": 1, "d": 0},
        ],
        "burstSliders": [
            {"b": 1.0, "x": 1, "y": 2, "c": 1, "d": 1, "tb": 1.25, "tx": 1, "ty": 0},
        ],
    }
    objects = parse_difficulty_dat_json(data)
    assert objects is not None
    swings = predict_swings(objects, TD, method="generic")
    assert [s.swing_type for s in swings] == [SwingType.NORMAL, SwingType.CHAIN, SwingType.NORMAL]
    assert [s.parity for s in swings] == [Parity.BACKHAND, Parity.FOREHAND, Parity.BACKHAND]
    assert swings[0].end_beat < swings[1].start_beat
