"""Saber rotation inference for a swing once its parity is known.

Arrow swings read their rotation straight from the AFN tables. Dots carry
no direction, so their rotation is inferred from where the hand comes from:
single dots from the step off the previous note, dot stacks from whichever
end of the stack needs the smaller turn.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from beatsaber_parity.parity.directions import (
    Parity,
    afn_table,
    backhand_table,
    cut_dir_from_note_to_note,
    forehand_table,
)
from beatsaber_parity.parity.swing import (
    Note,
    ResetType,
    SwingRecord,
    SwingType,
    all_dots,
    is_dot,
)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def arrow_angles(notes: Sequence[Note], parity: Parity, right_hand: bool) -> tuple[float, float]:
    """Rotation at the first and last arrow of a swing."""
    table = afn_table(parity, right_hand)
    arrows = [n for n in notes if not is_dot(n)]
    return table[arrows[0].direction], table[arrows[-1].direction]


def slider_angles(notes: Sequence[Note], parity: Parity, right_hand: bool) -> tuple[float, float]:
    """Rotation at both ends of a multi-beat swing.

    Dot endpoints borrow a direction from a neighbouring note: the other end
    for two-note swings, the middle note otherwise.
    """
    first, last = notes[0], notes[-1]
    if len(notes) == 2:
        first_dir = first.direction if not is_dot(first) else cut_dir_from_note_to_note(last, first)
        last_dir = last.direction if not is_dot(last) else cut_dir_from_note_to_note(last, first)
    else:
        middle = notes[len(notes) // 2]
        first_dir = (
            first.direction if not is_dot(first) else cut_dir_from_note_to_note(middle, first)
        )
        last_dir = last.direction if not is_dot(last) else cut_dir_from_note_to_note(last, middle)

    table = afn_table(parity, right_hand)
    return table[first_dir], table[last_dir]


def snapped_dot_swing_angle(
    previous: SwingRecord,
    notes: Sequence[Note],
    parity: Parity,
    right_hand: bool,
) -> tuple[tuple[Note, ...], float]:
    """Pick the sweep direction through a same-beat group of dots.

    Both directions through the group are tried; the one needing the smaller
    turn from the previous swing wins, then the one starting nearer the
    previous note, then the smaller absolute rotation.

    Returns:
        The notes in hit order (possibly reversed) and the swing rotation.
    """
    first, last = notes[0], notes[-1]
    table = afn_table(parity, right_hand)

    angle = table[cut_dir_from_note_to_note(first, last)]
    alt_angle = table[cut_dir_from_note_to_note(last, first)]

    change = previous.end.rotation - angle
    alt_change = previous.end.rotation - alt_angle

    if abs(alt_change) < abs(change):
        angle = alt_angle
    elif abs(alt_change) == abs(change):
        prev_note = previous.last_note
        first_dist = math.hypot(first.x - prev_note.x, first.y - prev_note.y)
        last_dist = math.hypot(last.x - prev_note.x, last.y - prev_note.y)
        if first_dist < last_dist:
            angle = alt_angle
        elif first_dist == last_dist and abs(alt_angle) < abs(angle):
            angle = alt_angle

    # alt_angle sweeps first -> last; anything else runs the group backwards
    if angle != alt_angle:
        return tuple(reversed(notes)), angle
    return tuple(notes), angle


def dot_swing_angle(
    previous: SwingRecord,
    dot: Note,
    reset_type: ResetType,
    right_hand: bool,
    clamp: bool = True,
) -> float:
    """Rotation for a lone dot, inferred from the step off the previous note."""
    prev_note = previous.last_note
    if dot.x == prev_note.x and dot.y == prev_note.y:
        angle = previous.end.rotation
    else:
        orientation = cut_dir_from_note_to_note(prev_note, dot)
        if previous.parity is Parity.FOREHAND and reset_type is ResetType.NONE:
            angle = forehand_table(right_hand)[orientation]
        else:
            angle = backhand_table(right_hand)[orientation]

    if not clamp:
        return angle

    x_diff = abs(dot.x - prev_note.x)
    y_diff = abs(dot.y - prev_note.y)
    if x_diff == 3:
        return _clamp(angle, -90, 90)
    if x_diff == 2:
        return _clamp(angle, -45, 45)
    if x_diff == 0 and y_diff > 1:
        return 0.0
    return _clamp(angle, -45, 0)


def swing_rotation(
    previous: SwingRecord,
    notes: Sequence[Note],
    swing_type: SwingType,
    parity: Parity,
    reset_type: ResetType,
    right_hand: bool,
    upside_down: bool = False,
) -> tuple[tuple[Note, ...], float, float]:
    """Start and end rotation of a swing whose parity has been decided.

    Returns:
        ``(notes, start_rotation, end_rotation)``; notes are returned because
        dot groups may be re-ordered.
    """
    notes = tuple(notes)
    if not all_dots(notes):
        if swing_type in (SwingType.SLIDER, SwingType.CHAIN):
            start, end = slider_angles(notes, parity, right_hand)
        else:
            start, end = arrow_angles(notes, parity, right_hand)
        if upside_down and not any(is_dot(n) for n in notes):
            start, end = -start, -end
        return notes, start, end

    if len(notes) > 1:
        notes, angle = snapped_dot_swing_angle(previous, notes, parity, right_hand)
        return notes, angle, angle

    angle = dot_swing_angle(previous, notes[0], reset_type, right_hand)
    return notes, angle, angle
