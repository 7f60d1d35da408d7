"""Tests for per-hand swing state, the container and reset fillers."""

from __future__ import annotations

from dataclasses import replace

import pytest

from beatsaber_parity.data.beatmap import BombNote, ColorNote, Obstacle
from beatsaber_parity.data.timing import TimeDomain
from beatsaber_parity.parity.directions import CutDirection, Parity
from beatsaber_parity.parity.methods import GenericParityCheck, ParityContext, first_swing
from beatsaber_parity.parity.state import (
    SwingContainer,
    SwingState,
    insert_reset_fillers,
    lateral_offsets,
    reset_filler,
)
from beatsaber_parity.parity.swing import (
    Position,
    ResetType,
    SwingCandidate,
    SwingRecord,
    SwingType,
)

TD = TimeDomain(120.0)


def _note(beat: float, x: int, y: int, d: int, color: int = 1) -> ColorNote:
    return ColorNote(beat=beat, x=x, y=y, color=color, direction=d, ms=beat * 500.0)


def _single(note: ColorNote) -> SwingCandidate:
    return SwingCandidate(notes=(note,), swing_type=SwingType.NORMAL, right_hand=note.color == 1)


def _bomb_reset_pair(gap: float = 2.0) -> tuple[SwingRecord, SwingRecord]:
    """A down hit, a bomb under it, and a repeated down hit ``gap`` beats later."""
    prev = first_swing(_single(_note(0.0, 1, 0, CutDirection.DOWN)), TD)
    ctx = ParityContext(previous=prev, time_domain=TD, bombs=(BombNote(gap / 2, 1, 0),))
    reset = GenericParityCheck().check(_single(_note(gap, 1, 0, CutDirection.DOWN)), ctx)
    assert reset.reset_type is ResetType.BOMB
    return prev, reset


# ---------------------------------------------------------------------------
# Lateral offsets
# ---------------------------------------------------------------------------


def test_wall_in_column_one_pushes_right() -> None:
    walls = [Obstacle(beat=4.0, duration=2.0, x=1, y=0, width=1, height=5)]
    offsets = lateral_offsets(walls, TD, undodge_seconds=0.35)
    assert offsets[0] == (4.0, 1)
    # Wall ends at 3 s; stepping back 0.35 s later is beat 6.7
    assert offsets[1][0] == pytest.approx(6.7)
    assert offsets[1][1] == 0


def test_wall_in_column_two_pushes_left() -> None:
    walls = [Obstacle(beat=1.0, duration=1.0, x=2, y=0, width=1, height=5)]
    assert lateral_offsets(walls, TD)[0] == (1.0, -1)


def test_wide_wall_from_column_zero_pushes_right() -> None:
    walls = [Obstacle(beat=1.0, duration=1.0, x=0, y=0, width=2, height=5)]
    assert lateral_offsets(walls, TD)[0] == (1.0, 1)


def test_duck_and_outer_walls_ignored() -> None:
    walls = [
        Obstacle(beat=1.0, duration=1.0, x=0, y=2, width=4, height=3),
        Obstacle(beat=2.0, duration=1.0, x=0, y=0, width=1, height=5),
        Obstacle(beat=3.0, duration=1.0, x=3, y=0, width=1, height=5),
    ]
    assert lateral_offsets(walls, TD) == []


def test_offset_at() -> None:
    walls = [Obstacle(beat=4.0, duration=2.0, x=1, y=0, width=1, height=5)]
    state = SwingState(True, lateral_offsets(walls, TD))
    assert state.offset_at(0.0) == 0
    assert state.offset_at(4.0) == 1
    assert state.offset_at(5.0) == 1
    assert state.offset_at(7.0) == 0


# ---------------------------------------------------------------------------
# SwingState / SwingContainer
# ---------------------------------------------------------------------------


def test_state_rejects_other_hand() -> None:
    record = first_swing(_single(_note(0.0, 1, 0, CutDirection.DOWN, color=0)), TD)
    state = SwingState(right_hand=True)
    with pytest.raises(ValueError):
        state.add(record)


def test_state_tracks_last() -> None:
    state = SwingState(right_hand=True)
    assert state.last is None
    record = first_swing(_single(_note(0.0, 1, 0, CutDirection.DOWN)), TD)
    state.add(record)
    assert state.last is record
    assert len(state) == 1
    assert list(state) == [record]


def test_lean_needs_both_hands() -> None:
    container = SwingContainer()
    right = first_swing(_single(_note(0.0, 2, 0, CutDirection.DOWN_RIGHT)), TD)
    container.add(right)
    assert container.lean == 0.0

    left = first_swing(_single(_note(0.0, 1, 0, CutDirection.DOWN_RIGHT, color=0)), TD)
    container.add(left)
    # Right hand at +45, mirrored left hand at -45
    assert container.lean == pytest.approx(45.0)


def test_merged_orders_by_beat_right_first() -> None:
    container = SwingContainer()
    left = first_swing(_single(_note(0.0, 1, 0, CutDirection.DOWN, color=0)), TD)
    right = first_swing(_single(_note(0.0, 2, 0, CutDirection.DOWN)), TD)
    late = replace(left, start_beat=-1.0)
    container.add(left)
    container.add(right)
    assert container.merged() == [right, left]

    other = SwingContainer()
    other.add(late)
    other.add(right)
    assert other.merged() == [late, right]
    assert len(container) == 2


# ---------------------------------------------------------------------------
# Reset fillers
# ---------------------------------------------------------------------------


def test_filler_between_bomb_reset() -> None:
    prev, reset = _bomb_reset_pair()
    filled = insert_reset_fillers([prev, reset], TD)
    assert len(filled) == 3
    filler = filled[1]

    assert filler.is_filler
    assert filler.swing_type is SwingType.UNDECIDED
    assert filler.reset_type is ResetType.NONE
    assert filler.parity is Parity.BACKHAND
    assert filler.ebpm == 0.0
    assert filler.start_beat == pytest.approx(1.0)
    assert filler.end_beat == pytest.approx(1.1)
    # Dodged upward from (1, 0)
    assert filler.start == Position(1, 2, 0.0)
    assert filled[0] is prev and filled[2] is reset


def test_filler_start_capped_by_max_gap() -> None:
    prev, reset = _bomb_reset_pair(gap=8.0)
    filler = reset_filler(prev, reset, TD, max_gap=1.0, duration=0.25)
    assert filler.start_beat == pytest.approx(1.0)
    assert filler.end_beat == pytest.approx(1.25)
    assert filler.start_seconds == pytest.approx(0.5)


def test_filler_insertion_is_idempotent() -> None:
    prev, reset = _bomb_reset_pair()
    once = insert_reset_fillers([prev, reset], TD)
    assert insert_reset_fillers(once, TD) == once


def test_no_filler_without_reset() -> None:
    prev = first_swing(_single(_note(0.0, 1, 0, CutDirection.DOWN)), TD)
    nxt = GenericParityCheck().check(
        _single(_note(1.0, 1, 0, CutDirection.UP)),
        ParityContext(previous=prev, time_domain=TD),
    )
    assert insert_reset_fillers([prev, nxt], TD) == [prev, nxt]
    assert insert_reset_fillers([], TD) == []


def test_container_inserts_fillers_per_hand() -> None:
    prev, reset = _bomb_reset_pair()
    container = SwingContainer()
    container.add(prev)
    container.add(reset)
    assert container.insert_reset_fillers(TD) == 1
    assert len(container.right_hand_swings) == 3
    assert container.left_hand_swings == ()
    assert container.insert_reset_fillers(TD) == 0
