"""Swing prediction orchestrator.

Per hand: classify notes into swing candidates, seed the first swing from
its own direction, then run every following candidate through the parity
strategy with the previous swing as context. After both hands are done,
reset fillers are inserted and the hands are merged chronologically.
"""

from __future__ import annotations

import bisect
import logging

from beatsaber_parity.config import AnalysisConfig
from beatsaber_parity.data.beatmap import BombNote, MapObjects, with_timestamps
from beatsaber_parity.data.timing import TimeDomain
from beatsaber_parity.parity.classifier import classify_swings
from beatsaber_parity.parity.methods import (
    ParityContext,
    ParityMethod,
    first_swing,
    get_parity_method,
)
from beatsaber_parity.parity.state import SwingContainer, lateral_offsets
from beatsaber_parity.parity.swing import SwingRecord

logger = logging.getLogger(__name__)


class SwingEngine:
    """Predicts how both hands swing through one difficulty.

    Args:
        method: Parity strategy instance or name; defaults to the config's.
        config: Analysis settings; defaults to AnalysisConfig().
    """

    def __init__(
        self,
        method: ParityMethod | str | None = None,
        config: AnalysisConfig | None = None,
    ) -> None:
        self.config = config or AnalysisConfig()
        if method is None:
            method = self.config.parity_method
        self.method = get_parity_method(method) if isinstance(method, str) else method

    def run(self, objects: MapObjects, time_domain: TimeDomain) -> SwingContainer:
        """Predict swings for both hands.

        Args:
            objects: Normalized map objects of one difficulty.
            time_domain: Tempo map of the difficulty.

        Returns:
            A SwingContainer holding each hand's records (fillers included);
            ``merged()`` gives the chronological sequence.
        """
        objects = with_timestamps(objects, time_domain)
        offsets = lateral_offsets(objects.obstacles, time_domain, self.config.undodge_seconds)
        container = SwingContainer(offsets)
        bombs = sorted(objects.bomb_notes, key=lambda b: b.beat)

        # Right hand first; the merge order does not depend on it
        for right_hand in (True, False):
            self._run_hand(objects, bombs, time_domain, container, right_hand)

        fillers = container.insert_reset_fillers(
            time_domain,
            self.config.reset_filler_max_gap,
            self.config.reset_filler_duration,
        )
        logger.info(
            "Predicted %d right / %d left swings with %s parity (%d reset fillers)",
            len(container.right),
            len(container.left),
            self.method.name,
            fillers,
        )
        return container

    def _run_hand(
        self,
        objects: MapObjects,
        bombs: list[BombNote],
        time_domain: TimeDomain,
        container: SwingContainer,
        right_hand: bool,
    ) -> None:
        state = container.state(right_hand)
        bomb_beats = [b.beat for b in bombs]
        candidates = classify_swings(
            objects.hand_notes(right_hand),
            right_hand=right_hand,
            slider_precision_ms=self.config.slider_precision_ms,
        )

        for candidate in candidates:
            offset = state.offset_at(candidate.first.beat)
            previous = state.last
            if previous is None:
                record = first_swing(candidate, time_domain, offset)
            else:
                lo = bisect.bisect_right(bomb_beats, previous.last_note.beat)
                hi = bisect.bisect_left(bomb_beats, candidate.first.beat)
                context = ParityContext(
                    previous=previous,
                    time_domain=time_domain,
                    bombs=tuple(bombs[lo:hi]),
                    lateral_offset=offset,
                )
                record = self.method.check(candidate, context)
            container.add(record)


def predict_swings(
    objects: MapObjects,
    time_domain: TimeDomain,
    method: ParityMethod | str | None = None,
    config: AnalysisConfig | None = None,
) -> list[SwingRecord]:
    """Merged, chronological swing records for one difficulty."""
    return SwingEngine(method, config).run(objects, time_domain).merged()
