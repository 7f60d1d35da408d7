"""Beat <-> seconds conversion under a piecewise-constant tempo map.

A TimeDomain is built once per difficulty from the base BPM, the official
BPM changes and the song offset, and is passed explicitly to everything
that needs real time. Nothing here holds process-wide state.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass

from beatsaber_parity.data.beatmap import BpmChange

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _TimedChange:
    beat: float  # file beat of the change
    bpm: float  # new BPM
    new_time: float  # start beat expressed at the preceding tempo


@dataclass(frozen=True, slots=True)
class _TimeScale:
    beat: float  # t
    scale: float  # s = base bpm / new bpm


class TimeDomain:
    """Tempo map for one difficulty.

    Args:
        bpm: Base BPM from Info.dat.
        bpm_changes: Official BPM changes, in any order.
        offset: Song time offset in seconds. Only the file-time mapping uses it.
    """

    __slots__ = ("_bpm", "_offset", "_changes", "_timescale")

    def __init__(
        self,
        bpm: float,
        bpm_changes: Iterable[BpmChange] = (),
        offset: float = 0.0,
    ) -> None:
        if bpm <= 0:
            raise ValueError(f"BPM must be positive, got {bpm}")
        self._bpm = float(bpm)
        self._offset = float(offset)

        ordered = sorted(bpm_changes, key=lambda c: c.beat)
        changes: list[_TimedChange] = []
        prev: _TimedChange | None = None
        for change in ordered:
            if prev is None:
                new_time = math.ceil(change.beat - (self._offset * self._bpm / 60) - 0.01)
            else:
                new_time = math.ceil(
                    (change.beat - prev.beat) / self._bpm * prev.bpm + prev.new_time - 0.01
                )
            prev = _TimedChange(beat=change.beat, bpm=change.bpm, new_time=float(new_time))
            changes.append(prev)

        self._changes: tuple[_TimedChange, ...] = tuple(changes)
        self._timescale: tuple[_TimeScale, ...] = tuple(
            _TimeScale(beat=c.beat, scale=self._bpm / c.bpm) for c in changes
        )
        if changes:
            logger.debug("Tempo map: base %.3f BPM, %d changes", self._bpm, len(changes))

    @property
    def bpm(self) -> float:
        """Base BPM."""
        return self._bpm

    @property
    def offset(self) -> float:
        return self._offset

    @property
    def bpm_changes(self) -> tuple[BpmChange, ...]:
        return tuple(BpmChange(beat=c.beat, bpm=c.bpm) for c in self._changes)

    def __repr__(self) -> str:
        return (
            f"TimeDomain(bpm={self._bpm}, changes={len(self._changes)}, offset={self._offset})"
        )

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------

    def to_real_time(self, beat: float, timescale: bool = True) -> float:
        """Convert a beat to seconds, honouring BPM changes.

        Walks the change list from the latest change backward; every stretch
        after a change is rescaled to the base tempo before the final linear
        conversion.

        Args:
            beat: Beat position in file time.
            timescale: When False, ignore BPM changes and scale linearly.

        Returns:
            Time in seconds (song offset not applied).
        """
        if not timescale:
            return beat / self._bpm * 60

        calculated = 0.0
        for ts in reversed(self._timescale):
            if beat > ts.beat:
                calculated += (beat - ts.beat) * ts.scale
                beat = ts.beat
        return (beat + calculated) / self._bpm * 60

    def to_beat_time(self, seconds: float, timescale: bool = True) -> float:
        """Convert seconds back to a beat; inverse of :meth:`to_real_time`.

        Args:
            seconds: Time in seconds.
            timescale: When False, convert linearly at the base BPM.

        Returns:
            Beat position in file time.
        """
        if not timescale:
            return seconds * self._bpm / 60

        calculated = 0.0
        for ts in reversed(self._timescale):
            boundary = self.to_real_time(ts.beat)
            if seconds > boundary:
                calculated += (seconds - boundary) / ts.scale
                seconds = boundary
        return (seconds + calculated) * self._bpm / 60

    def to_file_time(self, beat: float) -> float:
        """Map a beat in accumulated tempo space back to raw file-beat space."""
        for change in reversed(self._changes):
            if beat > change.new_time:
                return (beat - change.new_time) / change.bpm * self._bpm + change.beat
        return self.to_beat_time(self.to_real_time(beat, timescale=False) + self._offset, False)

    def current_bpm(self, beat: float) -> float:
        """BPM in effect at ``beat`` (base BPM before the first change)."""
        bpm = self._bpm
        for change in self._changes:
            if beat > change.beat:
                bpm = change.bpm
        return bpm

    # ------------------------------------------------------------------
    # Swing helpers
    # ------------------------------------------------------------------

    def seconds_between(self, start_beat: float, end_beat: float) -> float:
        """Real seconds elapsed between two beats."""
        return self.to_real_time(end_beat) - self.to_real_time(start_beat)

    def swing_ebpm(self, start_beat: float, end_beat: float) -> float:
        """Effective BPM implied by a swing gap between two beats.

        A full swing cycle (down and up) takes two gaps, hence the halving.

        Returns:
            EBPM, or 0.0 when the gap is not positive.
        """
        seconds = self.seconds_between(start_beat, end_beat)
        if seconds <= 0:
            return 0.0
        return 60 / (2 * seconds)
