"""Derived statistics over predicted swings.

Simple folds over a SwingContainer (and the map's notes for NPS). Every
statistic returns 0 when there is nothing to measure.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from enum import Enum

import numpy as np

from beatsaber_parity.data.beatmap import (
    LEFT_COLOR,
    RIGHT_COLOR,
    ColorNote,
    MapObjects,
    with_timestamps,
)
from beatsaber_parity.data.timing import TimeDomain
from beatsaber_parity.parity.state import SwingContainer
from beatsaber_parity.parity.swing import ResetType, SwingRecord, SwingType

logger = logging.getLogger(__name__)


class Hand(Enum):
    LEFT = "left"
    RIGHT = "right"
    BOTH = "both"


def _swings(container: SwingContainer, hand: Hand) -> list[SwingRecord]:
    if hand is Hand.LEFT:
        return list(container.left_hand_swings)
    if hand is Hand.RIGHT:
        return list(container.right_hand_swings)
    return container.merged()


def notes_per_second(notes: Sequence[ColorNote], hand: Hand = Hand.BOTH) -> float:
    """Note count over the time between the first and last note."""
    if hand is not Hand.BOTH:
        color = RIGHT_COLOR if hand is Hand.RIGHT else LEFT_COLOR
        notes = [n for n in notes if n.color == color]
    times = sorted(n.ms for n in notes if n.ms is not None)
    if len(times) < 2:
        return 0.0
    span = (times[-1] - times[0]) / 1000
    return len(times) / span if span > 0 else 0.0


def swings_per_second(
    container: SwingContainer,
    time_domain: TimeDomain,
    hand: Hand = Hand.BOTH,
) -> float:
    """Swings per second; BOTH is the sum of the two hands."""

    def _sps(swings: Sequence[SwingRecord]) -> float:
        if not swings:
            return 0.0
        seconds = time_domain.seconds_between(swings[0].start_beat, swings[-1].end_beat)
        return len(swings) / seconds if seconds > 0 else 0.0

    left = _sps(container.left_hand_swings)
    right = _sps(container.right_hand_swings)
    if hand is Hand.LEFT:
        return left
    if hand is Hand.RIGHT:
        return right
    return left + right


def average_ebpm(container: SwingContainer, hand: Hand = Hand.BOTH) -> float:
    swings = _swings(container, hand)
    if not swings:
        return 0.0
    return float(np.mean([s.ebpm for s in swings]))


def handedness(container: SwingContainer, hand: Hand = Hand.RIGHT) -> float:
    """Percentage of all swings made by ``hand`` (BOTH reads as RIGHT)."""
    total = len(container)
    count = len(container.left) if hand is Hand.LEFT else len(container.right)
    if total == 0 or count == 0:
        return 0.0
    return count / total * 100


def swing_type_percent(
    container: SwingContainer,
    swing_type: SwingType = SwingType.NORMAL,
    hand: Hand = Hand.BOTH,
) -> float:
    swings = _swings(container, hand)
    if not swings:
        return 0.0
    return sum(1 for s in swings if s.swing_type is swing_type) / len(swings) * 100


def doubles_percent(container: SwingContainer, threshold: float = 0.05) -> float:
    """Percentage of real swings where the left hand hits with the right.

    A left swing is a double when some right swing's first note lands within
    ``threshold`` ms of its own first note.
    """
    left = [s for s in container.left_hand_swings if s.notes]
    right = [s for s in container.right_hand_swings if s.notes]
    if not left and not right:
        return 0.0
    right_ms = [s.first_note.ms for s in right if s.first_note.ms is not None]
    matched = sum(
        1
        for s in left
        if s.first_note.ms is not None
        and any(abs(s.first_note.ms - ms) <= threshold for ms in right_ms)
    )
    return matched / (len(left) + len(right)) * 100


def reset_count(container: SwingContainer, reset_type: ResetType = ResetType.REBOUND) -> int:
    swings = container.merged()
    if len(swings) <= 1:
        return 0
    return sum(1 for s in swings if s.reset_type is reset_type)


def average_spacing(container: SwingContainer, hand: Hand = Hand.RIGHT) -> float:
    """Mean grid distance from the end of one swing to the start of the next."""
    swings = _swings(container, hand)
    if len(swings) <= 1:
        return 0.0
    return float(
        np.mean(
            [
                math.hypot(nxt.start.x - cur.end.x, nxt.start.y - cur.end.y)
                for cur, nxt in zip(swings, swings[1:])
            ]
        )
    )


def average_angle_change(container: SwingContainer, hand: Hand = Hand.RIGHT) -> float:
    """Mean rotation change between consecutive swings; BOTH averages the hands."""

    def _change(swings: Sequence[SwingRecord]) -> float:
        if len(swings) <= 1:
            return 0.0
        return float(
            np.mean(
                [abs(nxt.start.rotation - cur.end.rotation) for cur, nxt in zip(swings, swings[1:])]
            )
        )

    left = _change(container.left_hand_swings)
    right = _change(container.right_hand_swings)
    if hand is Hand.LEFT:
        return left
    if hand is Hand.RIGHT:
        return right
    return (left + right) / 2


def summarize(
    container: SwingContainer,
    objects: MapObjects,
    time_domain: TimeDomain,
    doubles_threshold: float = 0.05,
) -> dict[str, float]:
    """All statistics for one difficulty in a flat dict.

    Args:
        container: Predicted swings.
        objects: Map objects the swings were predicted from.
        time_domain: Tempo map of the difficulty.
        doubles_threshold: Window (ms) for two hands hitting together.
    """
    stats = {
        "nps": notes_per_second(with_timestamps(objects, time_domain).color_notes),
        "sps": swings_per_second(container, time_domain),
        "sps_left": swings_per_second(container, time_domain, Hand.LEFT),
        "sps_right": swings_per_second(container, time_domain, Hand.RIGHT),
        "average_ebpm": average_ebpm(container),
        "right_handed_percent": handedness(container, Hand.RIGHT),
        "left_handed_percent": handedness(container, Hand.LEFT),
        "doubles_percent": doubles_percent(container, doubles_threshold),
        "bomb_resets": float(reset_count(container, ResetType.BOMB)),
        "rebounds": float(reset_count(container, ResetType.REBOUND)),
        "average_spacing_left": average_spacing(container, Hand.LEFT),
        "average_spacing_right": average_spacing(container, Hand.RIGHT),
        "average_angle_change": average_angle_change(container, Hand.BOTH),
    }
    for swing_type in (
        SwingType.NORMAL,
        SwingType.STACK,
        SwingType.WINDOW,
        SwingType.SLIDER,
        SwingType.CHAIN,
    ):
        stats[f"{swing_type.value}_percent"] = swing_type_percent(container, swing_type)
    logger.info(
        "Summary: %.2f NPS, %.2f SPS, %d bomb resets, %d rebounds",
        stats["nps"],
        stats["sps"],
        int(stats["bomb_resets"]),
        int(stats["rebounds"]),
    )
    return stats
