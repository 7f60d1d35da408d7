"""4x3 bomb occupancy grid and saber bomb-avoidance simulation.

A BombGrid snapshots the bombs of one time bucket. Given where the hand is
and which way it is about to cut, the grid decides whether a bomb sits in the
swing path; if so the hand is pushed away along a fixed avoidance vector and
its parity flips (the player "resets" around the bomb).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence

import numpy as np

from beatsaber_parity.data.beatmap import GRID_COLUMNS, GRID_ROWS, BombNote
from beatsaber_parity.parity.directions import Parity

logger = logging.getLogger(__name__)

GridPos = tuple[int, int]

# Direction the hand dodges when a bomb blocks the swing from each cell
AVOIDANCE_VECTORS: dict[GridPos, GridPos] = {
    (0, 0): (1, 1),
    (0, 1): (1, 0),
    (0, 2): (1, -1),
    (1, 0): (0, 2),
    (1, 1): (1, 0),
    (1, 2): (0, -2),
    (2, 0): (0, 2),
    (2, 1): (-1, 0),
    (2, 2): (0, -2),
    (3, 0): (-1, -1),
    (3, 1): (0, -1),
    (3, 2): (-1, -1),
}


def clamp_position(x: float, y: float) -> GridPos:
    """Clamp a (possibly fractional) position onto the grid."""
    return (
        int(max(0, min(GRID_COLUMNS - 1, x))),
        int(max(0, min(GRID_ROWS - 1, y))),
    )


# ---------------------------------------------------------------------------
# Path predicates: does a bomb at (x, y) block a cut from hand cell (hx, hy)?
# ---------------------------------------------------------------------------


def _blocks_up(hx: int, hy: int, x: int, y: int, parity: Parity) -> bool:
    return ((y >= hy and y != 0) or (y > hy and y > 0)) and x == hx


def _blocks_down(hx: int, hy: int, x: int, y: int, parity: Parity) -> bool:
    return ((y <= hy and y != 2) or (y < hy and y < 2)) and x == hx


def _blocks_left(hx: int, hy: int, x: int, y: int, parity: Parity) -> bool:
    fore = (
        parity is Parity.FOREHAND
        and (y == hy or y == hy - 1)
        and ((hx != 3 and x < hx) or (hx < 3 and x <= hx))
    )
    back = (
        parity is Parity.BACKHAND
        and y == hy
        and ((hx != 0 and x < hx) or (hx > 0 and x <= hx))
    )
    return fore or back


def _blocks_right(hx: int, hy: int, x: int, y: int, parity: Parity) -> bool:
    fore = (
        parity is Parity.FOREHAND
        and (y == hy or y == hy - 1)
        and ((hx != 0 and x > hx) or (hx > 0 and x >= hx))
    )
    back = (
        parity is Parity.BACKHAND
        and y == hy
        and ((hx != 3 and x > hx) or (hx < 3 and x >= hx))
    )
    return fore or back


def _blocks_up_left(hx: int, hy: int, x: int, y: int, parity: Parity) -> bool:
    return (
        _blocks_up(hx, hy, x, y, parity)
        and not (x == 3 and y == 1)
        and parity is not Parity.FOREHAND
    )


def _blocks_up_right(hx: int, hy: int, x: int, y: int, parity: Parity) -> bool:
    return (
        _blocks_up(hx, hy, x, y, parity)
        and not (x == 0 and y == 1)
        and parity is not Parity.FOREHAND
    )


def _blocks_down_left(hx: int, hy: int, x: int, y: int, parity: Parity) -> bool:
    return (
        _blocks_down(hx, hy, x, y, parity)
        and not (x == 3 and y == 1)
        and parity is not Parity.BACKHAND
    )


def _blocks_down_right(hx: int, hy: int, x: int, y: int, parity: Parity) -> bool:
    return (
        _blocks_down(hx, hy, x, y, parity)
        and not (x == 0 and y == 1)
        and parity is not Parity.BACKHAND
    )


def _blocks_never(hx: int, hy: int, x: int, y: int, parity: Parity) -> bool:
    return False


PATH_PREDICATES: tuple[Callable[[int, int, int, int, Parity], bool], ...] = (
    _blocks_up,
    _blocks_down,
    _blocks_left,
    _blocks_right,
    _blocks_up_left,
    _blocks_up_right,
    _blocks_down_left,
    _blocks_down_right,
    _blocks_never,
)


# ---------------------------------------------------------------------------
# BombGrid
# ---------------------------------------------------------------------------


class BombGrid:
    """Occupancy of one bomb time bucket.

    Args:
        bombs: Bombs in the bucket. Coordinates are clamped onto the grid.
        beat: Beat of the bucket (first bomb), informational only.
    """

    __slots__ = ("beat", "_occupied")

    def __init__(self, bombs: Iterable[BombNote], beat: float = 0.0) -> None:
        self.beat = beat
        occupied = np.zeros((GRID_COLUMNS, GRID_ROWS), dtype=bool)
        for bomb in bombs:
            occupied[clamp_position(bomb.x, bomb.y)] = True
        occupied.flags.writeable = False
        self._occupied = occupied

    @property
    def occupancy(self) -> np.ndarray:
        """Read-only (4, 3) boolean array indexed ``[x, y]``."""
        return self._occupied

    def has_bomb(self, x: int, y: int) -> bool:
        return bool(self._occupied[clamp_position(x, y)])

    def bomb_positions(self) -> list[GridPos]:
        """Occupied cells, column-major (x outer, y inner)."""
        return [(int(x), int(y)) for x, y in np.argwhere(self._occupied)]

    def __len__(self) -> int:
        return int(self._occupied.sum())

    def __repr__(self) -> str:
        return f"BombGrid(beat={self.beat}, bombs={self.bomb_positions()})"

    @staticmethod
    def avoidance_vector(x: int, y: int) -> GridPos:
        """Dodge step for a hand standing on cell (x, y)."""
        return AVOIDANCE_VECTORS[clamp_position(x, y)]

    def bomb_forces_path_change(
        self,
        hand_pos: GridPos,
        cut_dir: int,
        last_parity: Parity,
        lateral_offset: int = 0,
    ) -> GridPos | None:
        """Find a bomb lying in the path of a cut.

        Bombs are visited column by column. Reaching a bomb on one of the two
        centre cells of the middle row ends the check: the bucket is treated
        as non-blocking, even if a later column holds a blocking bomb. The
        player's lateral offset shifts bombs by two columns per step.

        Args:
            hand_pos: Current hand cell.
            cut_dir: Inferred cut direction of the next swing (0-8).
            last_parity: Parity of the swing the hand is leaving.
            lateral_offset: Player sidestep (-1, 0 or 1).

        Returns:
            The first blocking bomb cell, or None.
        """
        predicate = PATH_PREDICATES[cut_dir]
        hx, hy = hand_pos
        for bx, by in self.bomb_positions():
            if bx in (1, 2) and by == 1:
                return None
            if predicate(hx, hy, bx - lateral_offset * 2, by, last_parity):
                return (bx, by)
        return None

    def simulate_saber_update(
        self,
        hand_pos: GridPos,
        cut_dir: int,
        last_parity: Parity,
        lateral_offset: int = 0,
    ) -> tuple[GridPos, bool]:
        """Move the hand through this bucket.

        Returns:
            ``(new_hand_pos, parity_flipped)``. The hand only moves (by the
            avoidance vector of its own cell) when a bomb blocks the cut.
        """
        hand_pos = clamp_position(*hand_pos)
        if self.bomb_forces_path_change(hand_pos, cut_dir, last_parity, lateral_offset) is None:
            return hand_pos, False
        dx, dy = self.avoidance_vector(*hand_pos)
        return clamp_position(hand_pos[0] + dx, hand_pos[1] + dy), True


# ---------------------------------------------------------------------------
# Bucketing
# ---------------------------------------------------------------------------


def cluster_bombs(bombs: Sequence[BombNote], snap: float) -> list[BombGrid]:
    """Group bombs into time buckets and build one grid per bucket.

    A bomb joins the current bucket while it lies within ``snap`` beats of the
    bucket's first bomb.

    Args:
        bombs: Bombs in any order.
        snap: Bucket width in beats.

    Returns:
        Grids in time order.
    """
    grids: list[BombGrid] = []
    bucket: list[BombNote] = []
    for bomb in sorted(bombs, key=lambda b: b.beat):
        if bucket and abs(bomb.beat - bucket[0].beat) > snap:
            grids.append(BombGrid(bucket, bucket[0].beat))
            bucket = []
        bucket.append(bomb)
    if bucket:
        grids.append(BombGrid(bucket, bucket[0].beat))
    return grids


def density(grids: Iterable[BombGrid]) -> np.ndarray:
    """Per-cell count of buckets holding a bomb, shape (4, 3)."""
    total = np.zeros((GRID_COLUMNS, GRID_ROWS), dtype=np.int64)
    for grid in grids:
        total += grid.occupancy
    return total
