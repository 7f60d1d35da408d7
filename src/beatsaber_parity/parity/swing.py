"""Swing model: candidates produced by the classifier and finalized records."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from enum import Enum

from beatsaber_parity.data.beatmap import BurstSlider, ColorNote
from beatsaber_parity.parity.directions import CutDirection, Parity

# Anything struck by a saber: a regular note or a chain head
Note = ColorNote | BurstSlider


class ResetType(Enum):
    NONE = "none"  # swing flows from the last one
    BOMB = "bomb"  # bombs force the same parity again
    REBOUND = "rebound"  # rotation forces an extra swing


class SwingType(Enum):
    NORMAL = "normal"
    STACK = "stack"
    WINDOW = "window"
    SLIDER = "slider"
    CHAIN = "chain"
    DOT_SPAM = "dot_spam"  # reserved, never produced
    UNDECIDED = "undecided"


@dataclass(frozen=True, slots=True)
class Position:
    """Hand cell plus saber rotation (AFN degrees)."""

    x: int
    y: int
    rotation: float = 0.0

    def with_rotation(self, rotation: float) -> Position:
        return replace(self, rotation=rotation)


def is_dot(note: Note) -> bool:
    return note.direction == CutDirection.ANY


def all_dots(notes: Sequence[Note]) -> bool:
    return all(n.direction == CutDirection.ANY for n in notes)


@dataclass(frozen=True, slots=True)
class SwingCandidate:
    """Notes believed to be struck in one motion, not yet given a parity."""

    notes: tuple[Note, ...]
    swing_type: SwingType
    right_hand: bool

    def __post_init__(self) -> None:
        if not self.notes:
            raise ValueError("SwingCandidate requires at least one note")

    @property
    def first(self) -> Note:
        return self.notes[0]

    @property
    def last(self) -> Note:
        return self.notes[-1]

    @property
    def all_dots(self) -> bool:
        return all_dots(self.notes)

    def first_arrow(self) -> Note | None:
        return next((n for n in self.notes if not is_dot(n)), None)

    def last_arrow(self) -> Note | None:
        return next((n for n in reversed(self.notes) if not is_dot(n)), None)


@dataclass(frozen=True, slots=True)
class SwingRecord:
    """A finalized swing for one hand.

    Reset fillers (the extra swing a player makes to reset) carry no notes.
    """

    parity: Parity
    swing_type: SwingType
    reset_type: ResetType
    start_beat: float
    end_beat: float
    start: Position
    end: Position
    right_hand: bool
    start_seconds: float = 0.0
    end_seconds: float = 0.0
    ebpm: float = 0.0
    upside_down: bool = False
    lateral_offset: int = 0
    notes: tuple[Note, ...] = field(default=())

    @property
    def is_reset(self) -> bool:
        return self.reset_type is not ResetType.NONE

    @property
    def is_filler(self) -> bool:
        return not self.notes

    @property
    def all_dots(self) -> bool:
        return bool(self.notes) and all_dots(self.notes)

    @property
    def first_note(self) -> Note:
        return self.notes[0]

    @property
    def last_note(self) -> Note:
        return self.notes[-1]

    def first_arrow(self) -> Note | None:
        return next((n for n in self.notes if not is_dot(n)), None)

    def __str__(self) -> str:
        hand = "R" if self.right_hand else "L"
        return (
            f"[{hand}] {self.start_beat:.3f}-{self.end_beat:.3f} {self.parity.value} "
            f"{self.swing_type.value} reset={self.reset_type.value} "
            f"rot={self.start.rotation:g}->{self.end.rotation:g} ebpm={self.ebpm:.1f}"
        )
