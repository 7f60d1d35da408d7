"""Segment one hand's notes into swings and classify each swing's shape.

The classifier buffers notes while they keep arriving within the slider
precision window with compatible directions. Once a note breaks the run, the
buffer is closed into a SwingCandidate:

    - Chain:  a burst slider (head plus a synthetic tail note)
    - Normal: a single note
    - Stack:  same-beat notes, every consecutive pair within one cell
    - Window: same-beat notes with at least one wider gap
    - Slider: notes spread over different beats
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence

from beatsaber_parity.data.beatmap import BurstSlider, ColorNote
from beatsaber_parity.parity.directions import (
    DIRECTION_VECTORS,
    backhand_table,
    forehand_table,
)
from beatsaber_parity.parity.swing import Note, SwingCandidate, SwingType, is_dot

logger = logging.getLogger(__name__)

DEFAULT_SLIDER_PRECISION_MS = 59.0


def _ms(note: Note) -> float:
    if note.ms is None:
        raise ValueError(f"Note at beat {note.beat} has no real time; stamp the map first")
    return note.ms


def chain_tail(chain: BurstSlider) -> ColorNote:
    """Synthetic note standing in for the end of a chain."""
    return ColorNote(
        beat=chain.tail_beat,
        x=chain.tail_x,
        y=chain.tail_y,
        color=chain.color,
        direction=chain.direction,
        ms=chain.tail_ms,
    )


# ---------------------------------------------------------------------------
# Ordering and classification of a closed buffer
# ---------------------------------------------------------------------------


def furthest_pair(notes: Sequence[Note]) -> tuple[Note, Note]:
    """The two notes furthest apart on the grid (first pair found wins ties)."""
    best = (notes[0], notes[0])
    best_dist = -1.0
    for a in notes:
        for b in notes:
            dist = math.hypot(b.x - a.x, b.y - a.y)
            if dist > best_dist:
                best = (a, b)
                best_dist = dist
    return best


def snapped_swing_sort(notes: Sequence[Note]) -> list[Note]:
    """Order same-beat notes in the order the saber passes through them.

    Notes are ordered along the line through their widest pair. With arrows
    present that line is pointed the way the arrows cut, so the result does
    not depend on the order the notes were listed in.
    """
    a, b = furthest_pair(notes)
    dx, dy = b.x - a.x, b.y - a.y
    arrows = [n for n in notes if not is_dot(n)]
    if arrows:
        lead = a if not is_dot(a) else arrows[0]
        vx, vy = DIRECTION_VECTORS[lead.direction]
        if dx * vx + dy * vy < 0:
            dx, dy = -dx, -dy
    return sorted(notes, key=lambda n: (n.x - a.x) * dx + (n.y - a.y) * dy)


def is_adjacent_run(notes: Sequence[Note]) -> bool:
    """True when every consecutive pair is within one cell on both axes."""
    return all(
        abs(b.x - a.x) <= 1 and abs(b.y - a.y) <= 1 for a, b in zip(notes, notes[1:])
    )


def classify_notes(notes: Sequence[Note]) -> SwingType:
    """Shape of a closed, non-chain buffer."""
    if len(notes) == 1:
        return SwingType.NORMAL
    if all(n.beat == notes[0].beat for n in notes):
        return SwingType.STACK if is_adjacent_run(notes) else SwingType.WINDOW
    return SwingType.SLIDER


# ---------------------------------------------------------------------------
# Buffering state machine
# ---------------------------------------------------------------------------


class SwingClassifier:
    """Per-hand buffering classifier.

    Args:
        right_hand: Hand whose AFN tables decide direction compatibility.
        slider_precision_ms: Largest gap (ms) between notes of one swing.
    """

    def __init__(
        self,
        right_hand: bool = True,
        slider_precision_ms: float = DEFAULT_SLIDER_PRECISION_MS,
    ) -> None:
        self.right_hand = right_hand
        self.slider_precision_ms = slider_precision_ms
        self._forehand = forehand_table(right_hand)
        self._backhand = backhand_table(right_hand)
        self._buffer: list[Note] = []
        self._chain = False

    @property
    def pending(self) -> tuple[Note, ...]:
        return tuple(self._buffer)

    def joins(self, last: Note, note: Note) -> bool:
        """Whether ``note`` continues the swing ending in ``last``."""
        if abs(_ms(note) - _ms(last)) > self.slider_precision_ms:
            return False
        return (
            is_dot(note)
            or is_dot(last)
            or note.direction == last.direction
            or abs(self._forehand[last.direction] - self._forehand[note.direction]) <= 45
            or abs(self._backhand[last.direction] - self._backhand[note.direction]) <= 45
        )

    def feed(self, note: Note) -> SwingCandidate | None:
        """Consume the next note; return the swing it closed, if any."""
        if isinstance(note, BurstSlider):
            closed = self._close()
            self._buffer = [note, chain_tail(note)]
            self._chain = True
            return closed

        if self._buffer and not self._chain and self.joins(self._buffer[-1], note):
            self._buffer.append(note)
            return None

        closed = self._close()
        self._buffer = [note]
        return closed

    def finish(self) -> SwingCandidate | None:
        """Close whatever is left in the buffer."""
        return self._close()

    def _close(self) -> SwingCandidate | None:
        if not self._buffer:
            return None
        notes = self._buffer
        if self._chain:
            swing_type = SwingType.CHAIN
        else:
            if len(notes) > 1 and all(n.beat == notes[0].beat for n in notes):
                notes = snapped_swing_sort(notes)
            swing_type = classify_notes(notes)
        self._buffer = []
        self._chain = False
        return SwingCandidate(notes=tuple(notes), swing_type=swing_type, right_hand=self.right_hand)


def classify_swings(
    notes: Iterable[Note],
    right_hand: bool = True,
    slider_precision_ms: float = DEFAULT_SLIDER_PRECISION_MS,
) -> list[SwingCandidate]:
    """Segment one hand's beat-ordered notes into swing candidates.

    Args:
        notes: Timestamped notes and chain heads of one hand.
        right_hand: Which hand the notes belong to.
        slider_precision_ms: Largest gap (ms) between notes of one swing.

    Returns:
        Candidates in time order; empty for no notes.
    """
    classifier = SwingClassifier(right_hand, slider_precision_ms)
    swings: list[SwingCandidate] = []
    for note in notes:
        closed = classifier.feed(note)
        if closed is not None:
            swings.append(closed)
    closed = classifier.finish()
    if closed is not None:
        swings.append(closed)
    logger.debug("%s hand: %d swings", "Right" if right_hand else "Left", len(swings))
    return swings
