"""Cut directions, parity states and angle-from-neutral (AFN) tables.

AFN is the saber roll relative to a neutral forehand down hit (or backhand
up hit). Rotating the wrist inward is positive, outward negative. Tables are
fixed 9-entry tuples indexed by CutDirection; left-hand tables mirror the
right-hand ones.

Cut direction IDs follow the map format:

    0=up  1=down  2=left  3=right
    4=up-left  5=up-right  6=down-left  7=down-right  8=any (dot)
"""

from __future__ import annotations

import math
from enum import Enum, IntEnum


class CutDirection(IntEnum):
    UP = 0
    DOWN = 1
    LEFT = 2
    RIGHT = 3
    UP_LEFT = 4
    UP_RIGHT = 5
    DOWN_LEFT = 6
    DOWN_RIGHT = 7
    ANY = 8


class Parity(Enum):
    """Orientation a hand swings in."""

    FOREHAND = "forehand"
    BACKHAND = "backhand"
    UNDECIDED = "undecided"

    def flipped(self) -> Parity:
        if self is Parity.FOREHAND:
            return Parity.BACKHAND
        if self is Parity.BACKHAND:
            return Parity.FOREHAND
        return self


# ---------------------------------------------------------------------------
# AFN tables, indexed by CutDirection
# ---------------------------------------------------------------------------

RIGHT_FOREHAND: tuple[float, ...] = (-180, 0, -90, 90, -135, 135, -45, 45, 0)
RIGHT_BACKHAND: tuple[float, ...] = (0, -180, 90, -90, 45, -45, 135, -135, 0)
LEFT_FOREHAND: tuple[float, ...] = (-180, 0, 90, -90, 135, -135, 45, -45, 0)
LEFT_BACKHAND: tuple[float, ...] = (0, -180, -90, 90, -45, 45, -135, 135, 0)

# Unit step for each compass direction (x right, y up); ANY has none
DIRECTION_VECTORS: tuple[tuple[int, int], ...] = (
    (0, 1),  # up
    (0, -1),  # down
    (-1, 0),  # left
    (1, 0),  # right
    (-1, 1),  # up-left
    (1, 1),  # up-right
    (-1, -1),  # down-left
    (1, -1),  # down-right
)

VECTOR_TO_CUT_DIRECTION: dict[tuple[int, int], CutDirection] = {
    vec: CutDirection(i) for i, vec in enumerate(DIRECTION_VECTORS)
}
VECTOR_TO_CUT_DIRECTION[(0, 0)] = CutDirection.ANY

OPPOSITE_CUT: tuple[CutDirection, ...] = (
    CutDirection.DOWN,
    CutDirection.UP,
    CutDirection.RIGHT,
    CutDirection.LEFT,
    CutDirection.DOWN_RIGHT,
    CutDirection.DOWN_LEFT,
    CutDirection.UP_RIGHT,
    CutDirection.UP_LEFT,
    CutDirection.ANY,
)

# First-swing seeding: these entry directions start on a backhand
BACKHAND_OPENERS = frozenset({CutDirection.UP, CutDirection.UP_LEFT, CutDirection.UP_RIGHT})


def forehand_table(right_hand: bool) -> tuple[float, ...]:
    return RIGHT_FOREHAND if right_hand else LEFT_FOREHAND


def backhand_table(right_hand: bool) -> tuple[float, ...]:
    return RIGHT_BACKHAND if right_hand else LEFT_BACKHAND


def afn_table(parity: Parity, right_hand: bool) -> tuple[float, ...]:
    """AFN table for a parity; UNDECIDED reads as forehand."""
    if parity is Parity.BACKHAND:
        return backhand_table(right_hand)
    return forehand_table(right_hand)


def opposite(direction: int) -> CutDirection:
    return OPPOSITE_CUT[direction]


def seed_parity(direction: int) -> Parity:
    """Parity of a hand's very first swing, from its entry direction."""
    return Parity.BACKHAND if direction in BACKHAND_OPENERS else Parity.FOREHAND


# ---------------------------------------------------------------------------
# Direction inference
# ---------------------------------------------------------------------------


def cut_dir_from_vector(dx: float, dy: float) -> CutDirection:
    """Cut direction whose unit vector points most against ``(dx, dy)``.

    A hand travelling along a vector was last cutting against it, so this
    picks the direction vector with the lowest dot product. Ties resolve to
    the lowest direction ID; the zero vector gives ANY.
    """
    if dx == 0 and dy == 0:
        return CutDirection.ANY
    best = 0
    best_dot = math.inf
    for i, (vx, vy) in enumerate(DIRECTION_VECTORS):
        dot = dx * vx + dy * vy
        if dot < best_dot:
            best = i
            best_dot = dot
    return CutDirection(best)


def cut_dir_from_note_to_note(first, last) -> CutDirection:
    """Cut direction inferred from the grid step between two notes."""
    return cut_dir_from_vector(last.x - first.x, last.y - first.y)


def vector_to_cut_dir(dx: float, dy: float) -> CutDirection:
    """Cut direction for a movement vector, each axis clipped to [-1, 1]."""
    key = (int(max(-1, min(1, round(dx)))), int(max(-1, min(1, round(dy)))))
    return VECTOR_TO_CUT_DIRECTION[key]


def cut_dir_from_angle(
    angle: float,
    parity: Parity,
    right_hand: bool = True,
    interval: float = 0.0,
) -> CutDirection:
    """Approximate cut direction for a saber rotation under a given parity.

    Args:
        angle: Saber rotation (AFN) in degrees.
        parity: Parity the rotation was reached with.
        right_hand: Whether to use the right-hand tables.
        interval: Rounding interval. With an interval the angle is truncated
            toward zero to a multiple of it; without one it is floored to a
            multiple of 45.

    Returns:
        First direction whose table entry equals the rounded angle, or UP when
        nothing matches.
    """
    if interval:
        rounded = math.trunc(angle / interval) * interval
    else:
        rounded = math.floor(angle / 45) * 45

    return _lookup_angle(rounded, parity, right_hand)


def cut_dir_nearest_angle(angle: float, parity: Parity, right_hand: bool = True) -> CutDirection:
    """Like :func:`cut_dir_from_angle` but rounds to the nearest 45 degrees."""
    return _lookup_angle(round(angle / 45) * 45, parity, right_hand)


def _lookup_angle(rounded: float, parity: Parity, right_hand: bool) -> CutDirection:
    table = afn_table(parity, right_hand)
    for i, value in enumerate(table):
        if value == rounded:
            return CutDirection(i)
    return CutDirection.UP
