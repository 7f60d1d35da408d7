"""Running per-hand swing state, the two-hand container and reset fillers."""

from __future__ import annotations

import bisect
import logging
from collections.abc import Iterable, Iterator, Sequence

from beatsaber_parity.data.beatmap import Obstacle
from beatsaber_parity.data.timing import TimeDomain
from beatsaber_parity.parity.grid import BombGrid, clamp_position
from beatsaber_parity.parity.swing import Position, ResetType, SwingRecord, SwingType

logger = logging.getLogger(__name__)

DEFAULT_UNDODGE_SECONDS = 0.35
DEFAULT_FILLER_MAX_GAP = 1.0  # beats
DEFAULT_FILLER_DURATION = 0.1  # beats


# ---------------------------------------------------------------------------
# Lateral offset from dodge walls
# ---------------------------------------------------------------------------


def lateral_offsets(
    obstacles: Iterable[Obstacle],
    time_domain: TimeDomain,
    undodge_seconds: float = DEFAULT_UNDODGE_SECONDS,
) -> list[tuple[float, int]]:
    """Infer when the player sidesteps dodge walls.

    A wall in column 1 (or a wide wall starting in column 0) pushes the
    player right (+1); one in column 2 pushes them left (-1). The player
    steps back ``undodge_seconds`` after the wall ends. Duck walls (3 or more
    columns wide) are ignored.

    Returns:
        ``(beat, offset)`` entries in beat order.
    """
    entries: list[tuple[float, int]] = []
    for wall in sorted(obstacles, key=lambda o: o.beat):
        if wall.width >= 3:
            continue
        if wall.x == 1 or (wall.x == 0 and wall.width > 1):
            offset = 1
        elif wall.x == 2:
            offset = -1
        else:
            continue
        entries.append((wall.beat, offset))
        wall_end = time_domain.to_real_time(wall.beat + wall.duration)
        entries.append((time_domain.to_beat_time(wall_end + undodge_seconds), 0))
    entries.sort(key=lambda e: e[0])
    return entries


class SwingState:
    """Append-only swing history for one hand.

    Args:
        right_hand: Which hand this state tracks.
        offsets: ``(beat, offset)`` lateral-offset entries in beat order.
    """

    def __init__(self, right_hand: bool, offsets: Sequence[tuple[float, int]] = ()) -> None:
        self.right_hand = right_hand
        self._records: list[SwingRecord] = []
        self._offset_beats = [beat for beat, _ in offsets]
        self._offsets = [offset for _, offset in offsets]

    @property
    def records(self) -> tuple[SwingRecord, ...]:
        return tuple(self._records)

    @property
    def last(self) -> SwingRecord | None:
        return self._records[-1] if self._records else None

    def add(self, record: SwingRecord) -> None:
        if record.right_hand != self.right_hand:
            raise ValueError("Record belongs to the other hand")
        self._records.append(record)

    def offset_at(self, beat: float) -> int:
        """Most recent lateral offset at or before ``beat`` (0 if none)."""
        i = bisect.bisect_right(self._offset_beats, beat)
        return self._offsets[i - 1] if i else 0

    def insert_reset_fillers(
        self,
        time_domain: TimeDomain,
        max_gap: float = DEFAULT_FILLER_MAX_GAP,
        duration: float = DEFAULT_FILLER_DURATION,
    ) -> int:
        """Replace the history with one including reset fillers.

        Returns:
            Number of fillers inserted.
        """
        before = len(self._records)
        self._records = insert_reset_fillers(self._records, time_domain, max_gap, duration)
        return len(self._records) - before

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[SwingRecord]:
        return iter(self._records)


class SwingContainer:
    """Both hands' swing histories plus the player's lean."""

    def __init__(self, offsets: Sequence[tuple[float, int]] = ()) -> None:
        self.right = SwingState(True, offsets)
        self.left = SwingState(False, offsets)
        self.lean = 0.0

    def state(self, right_hand: bool) -> SwingState:
        return self.right if right_hand else self.left

    def add(self, record: SwingRecord) -> None:
        self.state(record.right_hand).add(record)
        self._update_lean()

    def _update_lean(self) -> None:
        right, left = self.right.last, self.left.last
        if right is None or left is None:
            return
        # Left-hand rotations are mirrored; negate to share the right-hand frame
        self.lean = (right.end.rotation - left.end.rotation) / 2

    @property
    def right_hand_swings(self) -> tuple[SwingRecord, ...]:
        return self.right.records

    @property
    def left_hand_swings(self) -> tuple[SwingRecord, ...]:
        return self.left.records

    def merged(self) -> list[SwingRecord]:
        """Both hands in start-beat order; right hand first on ties."""
        return sorted(self.right.records + self.left.records, key=lambda r: r.start_beat)

    def insert_reset_fillers(
        self,
        time_domain: TimeDomain,
        max_gap: float = DEFAULT_FILLER_MAX_GAP,
        duration: float = DEFAULT_FILLER_DURATION,
    ) -> int:
        inserted = self.right.insert_reset_fillers(time_domain, max_gap, duration)
        inserted += self.left.insert_reset_fillers(time_domain, max_gap, duration)
        return inserted

    def __len__(self) -> int:
        return len(self.right) + len(self.left)


# ---------------------------------------------------------------------------
# Reset fillers
# ---------------------------------------------------------------------------


def reset_filler(
    predecessor: SwingRecord,
    reset: SwingRecord,
    time_domain: TimeDomain,
    max_gap: float = DEFAULT_FILLER_MAX_GAP,
    duration: float = DEFAULT_FILLER_DURATION,
) -> SwingRecord:
    """The extra swing a player makes between ``predecessor`` and ``reset``.

    It starts halfway through the gap (at most ``max_gap`` beats after the
    predecessor), dodges away from the predecessor's exit cell and holds the
    rotation halfway between the two real swings.
    """
    gap = reset.first_note.beat - predecessor.last_note.beat
    start_beat = predecessor.end_beat + min(gap / 2, max_gap)
    end_beat = start_beat + duration

    dx, dy = BombGrid.avoidance_vector(predecessor.end.x, predecessor.end.y)
    x, y = clamp_position(predecessor.end.x + dx, predecessor.end.y + dy)
    rotation = (predecessor.end.rotation + reset.start.rotation) / 2

    return SwingRecord(
        parity=reset.parity.flipped(),
        swing_type=SwingType.UNDECIDED,
        reset_type=ResetType.NONE,
        start_beat=start_beat,
        end_beat=end_beat,
        start=Position(x, y, rotation),
        end=Position(x, y, rotation),
        right_hand=reset.right_hand,
        start_seconds=time_domain.to_real_time(start_beat),
        end_seconds=time_domain.to_real_time(end_beat),
        lateral_offset=reset.lateral_offset,
    )


def insert_reset_fillers(
    records: Sequence[SwingRecord],
    time_domain: TimeDomain,
    max_gap: float = DEFAULT_FILLER_MAX_GAP,
    duration: float = DEFAULT_FILLER_DURATION,
) -> list[SwingRecord]:
    """Insert one filler swing before every reset record of one hand.

    The very first record cannot be a reset (it has no predecessor) and is
    never preceded by a filler.

    Args:
        records: One hand's real swing records in order.
        time_domain: Tempo map for the filler timestamps.

    Returns:
        A new list with fillers in place.
    """
    result: list[SwingRecord] = []
    for i, record in enumerate(records):
        # A filler already in front of the reset means this list was filled before
        if i > 0 and record.is_reset and not records[i - 1].is_filler:
            result.append(reset_filler(records[i - 1], record, time_domain, max_gap, duration))
        result.append(record)
    if len(result) != len(records):
        logger.debug("Inserted %d reset fillers", len(result) - len(records))
    return result
