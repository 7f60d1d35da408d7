"""Tests for swing segmentation and classification."""

from __future__ import annotations

import pytest

from beatsaber_parity.data.beatmap import BurstSlider, ColorNote
from beatsaber_parity.parity.classifier import (
    SwingClassifier,
    chain_tail,
    classify_notes,
    classify_swings,
    furthest_pair,
    snapped_swing_sort,
)
from beatsaber_parity.parity.directions import CutDirection
from beatsaber_parity.parity.swing import SwingCandidate, SwingType

UP = CutDirection.UP
DOWN = CutDirection.DOWN
DOWN_LEFT = CutDirection.DOWN_LEFT
ANY = CutDirection.ANY


def _note(beat: float, x: int, y: int, d: int, color: int = 1) -> ColorNote:
    """Right-hand note timestamped at 120 BPM."""
    return ColorNote(beat=beat, x=x, y=y, color=color, direction=d, ms=beat * 500.0)


def _chain(beat: float, tail_beat: float) -> BurstSlider:
    return BurstSlider(
        color=1,
        beat=beat,
        x=1,
        y=2,
        direction=DOWN,
        tail_beat=tail_beat,
        tail_x=1,
        tail_y=0,
        ms=beat * 500.0,
        tail_ms=tail_beat * 500.0,
    )


# ---------------------------------------------------------------------------
# Segmentation
# ---------------------------------------------------------------------------


def test_empty_hand_has_no_swings() -> None:
    assert classify_swings([]) == []


def test_single_note_is_normal() -> None:
    swings = classify_swings([_note(4.0, 1, 0, DOWN)])
    assert len(swings) == 1
    assert swings[0].swing_type is SwingType.NORMAL
    assert swings[0].right_hand


def test_close_same_direction_notes_form_a_slider() -> None:
    """10 ms apart at 120 BPM is inside the slider window."""
    swings = classify_swings([_note(10.0, 1, 2, DOWN), _note(10.02, 1, 1, DOWN)])
    assert len(swings) == 1
    assert swings[0].swing_type is SwingType.SLIDER
    assert [n.beat for n in swings[0].notes] == [10.0, 10.02]


def test_distant_notes_are_separate_swings() -> None:
    swings = classify_swings([_note(0.0, 1, 0, DOWN), _note(1.0, 1, 0, UP)])
    assert [s.swing_type for s in swings] == [SwingType.NORMAL, SwingType.NORMAL]


def test_opposite_directions_never_join() -> None:
    swings = classify_swings([_note(0.0, 1, 2, UP), _note(0.02, 1, 0, DOWN)])
    assert len(swings) == 2


def test_45_degree_turn_joins() -> None:
    swings = classify_swings([_note(0.0, 2, 2, DOWN), _note(0.02, 1, 1, DOWN_LEFT)])
    assert len(swings) == 1


def test_dots_join_anything() -> None:
    classifier = SwingClassifier()
    assert classifier.joins(_note(0.0, 0, 0, UP), _note(0.05, 0, 1, ANY))
    assert classifier.joins(_note(0.0, 0, 0, ANY), _note(0.05, 0, 1, DOWN))


def test_precision_window_is_configurable() -> None:
    notes = [_note(0.0, 1, 2, DOWN), _note(0.1, 1, 1, DOWN)]  # 50 ms apart
    assert len(classify_swings(notes, slider_precision_ms=59.0)) == 1
    assert len(classify_swings(notes, slider_precision_ms=40.0)) == 2


def test_unstamped_notes_raise() -> None:
    notes = [
        ColorNote(beat=0.0, x=0, y=0, color=1, direction=DOWN),
        ColorNote(beat=0.1, x=0, y=0, color=1, direction=DOWN),
    ]
    with pytest.raises(ValueError, match="real time"):
        classify_swings(notes)


# ---------------------------------------------------------------------------
# Same-beat shapes
# ---------------------------------------------------------------------------


def test_spread_same_beat_notes_form_a_window() -> None:
    notes = [_note(8.0, 0, 0, DOWN), _note(8.0, 1, 0, DOWN), _note(8.0, 3, 0, DOWN)]
    swings = classify_swings(notes)
    assert len(swings) == 1
    assert swings[0].swing_type is SwingType.WINDOW


def test_adjacent_same_beat_notes_form_a_stack() -> None:
    swings = classify_swings([_note(8.0, 1, 0, DOWN), _note(8.0, 1, 1, DOWN)])
    assert len(swings) == 1
    assert swings[0].swing_type is SwingType.STACK
    # A down stack is hit top first
    assert [(n.x, n.y) for n in swings[0].notes] == [(1, 1), (1, 0)]


@pytest.mark.parametrize("columns", [(0, 1, 2), (0, 2, 1), (2, 0, 1), (1, 2, 0)])
def test_arrow_row_shape_ignores_listing_order(columns: tuple[int, ...]) -> None:
    notes = [_note(8.0, x, 0, DOWN) for x in columns]
    swings = classify_swings(notes)
    assert len(swings) == 1
    assert swings[0].swing_type is SwingType.STACK


def test_arrow_stack_sorted_along_cut_direction() -> None:
    notes = [_note(4.0, 1, 2, UP), _note(4.0, 1, 0, UP), _note(4.0, 1, 1, UP)]
    assert [n.y for n in snapped_swing_sort(notes)] == [0, 1, 2]
    assert [n.y for n in snapped_swing_sort(list(reversed(notes)))] == [0, 1, 2]


def test_dot_stack_sorted_along_widest_pair() -> None:
    dots = [_note(2.0, 2, 0, ANY), _note(2.0, 0, 0, ANY), _note(2.0, 1, 0, ANY)]
    ordered = snapped_swing_sort(dots)
    assert [n.x for n in ordered] == [2, 1, 0]
    assert classify_notes(ordered) is SwingType.STACK


def test_furthest_pair() -> None:
    notes = [_note(0.0, 1, 1, ANY), _note(0.0, 0, 0, ANY), _note(0.0, 3, 2, ANY)]
    a, b = furthest_pair(notes)
    assert {(a.x, a.y), (b.x, b.y)} == {(0, 0), (3, 2)}


# ---------------------------------------------------------------------------
# Chains
# ---------------------------------------------------------------------------


def test_chain_tail_is_synthetic_note() -> None:
    tail = chain_tail(_chain(2.0, 2.5))
    assert isinstance(tail, ColorNote)
    assert (tail.beat, tail.x, tail.y, tail.direction) == (2.5, 1, 0, DOWN)
    assert tail.ms == 1250.0


def test_chain_closes_previous_swing_and_stands_alone() -> None:
    notes = [_note(0.0, 1, 0, UP), _chain(2.0, 2.5), _note(4.0, 1, 0, UP)]
    swings = classify_swings(notes)
    assert [s.swing_type for s in swings] == [
        SwingType.NORMAL,
        SwingType.CHAIN,
        SwingType.NORMAL,
    ]
    chain = swings[1]
    assert len(chain.notes) == 2
    assert isinstance(chain.first, BurstSlider)
    assert chain.last.beat == 2.5


def test_candidate_requires_notes() -> None:
    with pytest.raises(ValueError):
        SwingCandidate(notes=(), swing_type=SwingType.NORMAL, right_hand=True)


def test_left_hand_flag_propagates() -> None:
    swings = classify_swings([_note(0.0, 0, 0, DOWN, color=0)], right_hand=False)
    assert not swings[0].right_hand
