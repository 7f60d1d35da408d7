"""Parity prediction strategies.

Every strategy follows the same skeleton and differs only in its constants
(ParityConfig) and in two hooks: how a bomb reset suggested by the grid
simulation is confirmed or dismissed, and how a non-bomb swing is split into
a normal flip or a rebound.

    generic       absolute parity, >=90 degree implied-parity bomb filter
    experimental  wider bomb buckets, bomb-density and dot-path filters
    retro         2018-2019 style play: never upside down, tighter rebounds
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from beatsaber_parity.data.beatmap import BombNote
from beatsaber_parity.data.timing import TimeDomain
from beatsaber_parity.parity.directions import (
    CutDirection,
    Parity,
    afn_table,
    backhand_table,
    cut_dir_from_angle,
    cut_dir_from_note_to_note,
    cut_dir_nearest_angle,
    forehand_table,
    opposite,
    seed_parity,
    vector_to_cut_dir,
)
from beatsaber_parity.parity.grid import BombGrid, GridPos, clamp_position, cluster_bombs, density
from beatsaber_parity.parity.rotation import swing_rotation
from beatsaber_parity.parity.swing import (
    Position,
    ResetType,
    SwingCandidate,
    SwingRecord,
    is_dot,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Configuration and per-call context
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ParityConfig:
    """Per-strategy constants."""

    name: str
    bomb_snap: float  # beats; bombs within this of a bucket's first bomb share a grid
    rebound_angle: float  # |AFN change| above this is a rebound
    upside_down: bool  # whether upside-down hits are considered at all
    path_steps: int = 5  # cells walked when checking the swing path for bombs


GENERIC_CONFIG = ParityConfig(name="generic", bomb_snap=0.05, rebound_angle=270, upside_down=True)
EXPERIMENTAL_CONFIG = ParityConfig(
    name="experimental", bomb_snap=0.325, rebound_angle=270, upside_down=True
)
RETRO_CONFIG = ParityConfig(name="retro", bomb_snap=0.05, rebound_angle=135, upside_down=False)


@dataclass(frozen=True, slots=True)
class ParityContext:
    """Everything a strategy may look at besides the candidate itself."""

    previous: SwingRecord  # last real swing on the same hand
    time_domain: TimeDomain
    bombs: tuple[BombNote, ...] = ()  # strictly between previous and candidate
    lateral_offset: int = 0  # player sidestep from dodge walls

    @property
    def right_hand(self) -> bool:
        return self.previous.right_hand


@dataclass(frozen=True, slots=True)
class AngleState:
    """Angle-from-neutral bookkeeping shared by every strategy."""

    prev_dir: CutDirection  # exit direction of the previous swing
    cur_dir: CutDirection  # entry direction of the candidate
    current_afn: float
    next_afn: float
    upside_down: bool

    @property
    def change(self) -> float:
        return self.current_afn - self.next_afn


@dataclass(frozen=True, slots=True)
class BombSimulation:
    """Hand walked through every bomb bucket between two swings."""

    grids: tuple[BombGrid, ...]
    start_hand: GridPos
    hand: GridPos
    start_parity: Parity
    parity: Parity

    @property
    def reset_indicated(self) -> bool:
        return self.parity is not self.start_parity


def _all_dot_swing(record: SwingRecord) -> bool:
    return all(is_dot(n) for n in record.notes)


# ---------------------------------------------------------------------------
# Base strategy
# ---------------------------------------------------------------------------


class ParityMethod:
    """Shared parity-check skeleton; subclasses supply the variant hooks."""

    config: ParityConfig = GENERIC_CONFIG

    @property
    def name(self) -> str:
        return self.config.name

    def check(self, candidate: SwingCandidate, context: ParityContext) -> SwingRecord:
        """Finalize a candidate swing following ``context.previous``.

        Args:
            candidate: The next swing on the same hand.
            context: Previous record, bombs in between, offset and tempo map.

        Returns:
            A new SwingRecord with parity, reset type, rotation and timing.
        """
        prev = context.previous
        angles = self.resolve_angles(candidate, context)
        sim = self.simulate_bombs(context)

        if sim.reset_indicated and self.confirm_bomb_reset(candidate, context, angles, sim):
            parity, reset_type = prev.parity, ResetType.BOMB
        else:
            parity, reset_type = self.finish(candidate, context, angles)

        upside_down = angles.upside_down
        notes, start_rot, end_rot = swing_rotation(
            prev,
            candidate.notes,
            candidate.swing_type,
            parity,
            reset_type,
            candidate.right_hand,
            upside_down=upside_down,
        )
        start_rot, end_rot = self.adjust_rotation(
            candidate, context, reset_type, start_rot, end_rot
        )

        if reset_type is not ResetType.NONE:
            logger.debug(
                "%s reset at beat %.3f (%s hand, %s)",
                reset_type.value,
                candidate.first.beat,
                "right" if candidate.right_hand else "left",
                self.name,
            )

        return build_record(
            notes,
            candidate,
            parity,
            reset_type,
            start_rot,
            end_rot,
            context.time_domain,
            previous=prev,
            upside_down=upside_down,
            lateral_offset=context.lateral_offset,
        )

    # ------------------------------------------------------------------
    # Shared steps
    # ------------------------------------------------------------------

    def resolve_angles(self, candidate: SwingCandidate, context: ParityContext) -> AngleState:
        prev = context.previous
        right_hand = candidate.right_hand

        if _all_dot_swing(prev):
            prev_dir = cut_dir_from_angle(prev.end.rotation, prev.parity, right_hand, 45.0)
        else:
            prev_dir = CutDirection(prev.first_arrow().direction)

        arrow = candidate.first_arrow()
        if arrow is None:
            cur_dir = opposite(cut_dir_from_note_to_note(prev.last_note, candidate.first))
        else:
            cur_dir = CutDirection(arrow.direction)

        current_afn = afn_table(prev.parity, right_hand)[prev_dir]
        next_afn = afn_table(prev.parity.flipped(), right_hand)[cur_dir]

        return AngleState(
            prev_dir=prev_dir,
            cur_dir=cur_dir,
            current_afn=current_afn,
            next_afn=next_afn,
            upside_down=self.config.upside_down and self._is_upside_down(candidate, prev),
        )

    @staticmethod
    def _is_upside_down(candidate: SwingCandidate, prev: SwingRecord) -> bool:
        direction = candidate.first.direction
        if prev.end.rotation <= 0:
            return False
        if prev.parity is Parity.BACKHAND:
            return direction in (CutDirection.UP, CutDirection.ANY)
        if prev.parity is Parity.FOREHAND:
            return direction in (CutDirection.DOWN, CutDirection.ANY)
        return False

    def simulate_bombs(self, context: ParityContext) -> BombSimulation:
        """Walk the hand through each bomb bucket between the two swings."""
        prev = context.previous
        grids = tuple(cluster_bombs(context.bombs, self.config.bomb_snap))
        start_hand = clamp_position(prev.end.x, prev.end.y)
        hand = start_hand
        parity = prev.parity
        interval = 0.0 if _all_dot_swing(prev) else 45.0

        for grid in grids:
            cut = cut_dir_from_angle(prev.end.rotation, parity, prev.right_hand, interval)
            hand, flipped = grid.simulate_saber_update(hand, cut, parity, context.lateral_offset)
            if flipped:
                parity = parity.flipped()

        return BombSimulation(
            grids=grids,
            start_hand=start_hand,
            hand=hand,
            start_parity=prev.parity,
            parity=parity,
        )

    def finish(
        self,
        candidate: SwingCandidate,
        context: ParityContext,
        angles: AngleState,
    ) -> tuple[Parity, ResetType]:
        """Decide flip or rebound for a swing with no bomb reset."""
        prev = context.previous
        if candidate.all_dots:
            return prev.parity.flipped(), ResetType.NONE

        # 180 is outside the tables; only an upside-down -180 negated gets here
        if prev.end.rotation == 180:
            if 180 + angles.next_afn >= 0:
                return prev.parity.flipped(), ResetType.NONE
            return prev.parity, ResetType.REBOUND

        return self.finish_rotation(candidate, context, angles)

    # ------------------------------------------------------------------
    # Variant hooks
    # ------------------------------------------------------------------

    def confirm_bomb_reset(
        self,
        candidate: SwingCandidate,
        context: ParityContext,
        angles: AngleState,
        sim: BombSimulation,
    ) -> bool:
        raise NotImplementedError

    def finish_rotation(
        self,
        candidate: SwingCandidate,
        context: ParityContext,
        angles: AngleState,
    ) -> tuple[Parity, ResetType]:
        prev = context.previous
        if abs(angles.change) > self.config.rebound_angle and not angles.upside_down:
            return prev.parity, ResetType.REBOUND
        return prev.parity.flipped(), ResetType.NONE

    def adjust_rotation(
        self,
        candidate: SwingCandidate,
        context: ParityContext,
        reset_type: ResetType,
        start: float,
        end: float,
    ) -> tuple[float, float]:
        return start, end

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.config})"


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------


class GenericParityCheck(ParityMethod):
    """Assumes absolute parity, even for repeated same-direction notes."""

    config = GENERIC_CONFIG

    def confirm_bomb_reset(self, candidate, context, angles, sim) -> bool:
        prev = context.previous
        right_hand = candidate.right_hand
        if is_dot(candidate.first) and _all_dot_swing(prev):
            return True

        # Would resetting still leave a 90 degree turn into the next note?
        alt = cut_dir_nearest_angle(prev.end.rotation, prev.parity, right_hand)
        fore = forehand_table(right_hand)
        back = backhand_table(right_hand)
        if prev.parity is Parity.FOREHAND:
            return abs(fore[alt] + back[angles.cur_dir]) >= 90
        return abs(back[alt] + fore[angles.cur_dir]) >= 90


class ExperimentalParityCheck(ParityMethod):
    """Generic behaviour with a dot-aware bomb filter over the bomb density."""

    config = EXPERIMENTAL_CONFIG

    def confirm_bomb_reset(self, candidate, context, angles, sim) -> bool:
        prev = context.previous
        right_hand = candidate.right_hand
        fore_table = forehand_table(right_hand)
        back_table = backhand_table(right_hand)
        next_note = candidate.first

        dx = sim.hand[0] - sim.start_hand[0]
        dy = sim.hand[1] - sim.start_hand[1]
        approx_cut = vector_to_cut_dir(dx, dy) if (dx or dy) else CutDirection.UP
        exit_point = Position(prev.last_note.x, sim.hand[1])
        approx_dot = opposite(cut_dir_from_note_to_note(exit_point, next_note))

        fore = fore_table[approx_cut]
        back = back_table[approx_cut]
        next_fore = fore_table[approx_dot]
        next_back = back_table[approx_dot]

        # Whichever parity gives the smaller turn into the next note is the
        # natural one; a previous swing already in it needs no reset
        fore_turn = abs(next_fore - back)
        back_turn = abs(next_back - fore)
        if fore_turn < back_turn:
            if prev.parity is Parity.BACKHAND:
                return False
        elif back_turn < fore_turn:
            if prev.parity is Parity.FOREHAND:
                return False
        elif abs(next_fore) > abs(next_back):
            if prev.parity is Parity.FOREHAND:
                return False
        elif abs(next_fore) < abs(next_back):
            if prev.parity is Parity.BACKHAND:
                return False

        step = (
            int(np.clip(next_note.x - prev.last_note.x, -1, 1)),
            int(np.clip(next_note.y - prev.last_note.y, -1, 1)),
        )
        return bomb_in_swing_path(
            step,
            (prev.end.x, prev.end.y),
            density(sim.grids),
            self.config.path_steps,
        )


class RetroParityCheck(ParityMethod):
    """Older play style: no upside-down hits, rebounds past 135 degrees."""

    config = RETRO_CONFIG

    def confirm_bomb_reset(self, candidate, context, angles, sim) -> bool:
        if is_dot(candidate.first):
            return True
        # Forehand bomb resets need a 90 degree turn; backhand ones 45
        if sim.parity is Parity.FOREHAND and abs(angles.change) < 90:
            return False
        if sim.parity is Parity.BACKHAND and abs(angles.change) < 45:
            return False
        return True

    def finish_rotation(self, candidate, context, angles) -> tuple[Parity, ResetType]:
        prev = context.previous
        same_parity_afn = afn_table(prev.parity, candidate.right_hand)[angles.cur_dir]
        if abs(angles.current_afn - same_parity_afn) < 90:
            return prev.parity, ResetType.REBOUND
        if angles.next_afn > 90 or angles.next_afn < -135:
            return prev.parity, ResetType.REBOUND
        if abs(angles.change) > self.config.rebound_angle:
            return prev.parity, ResetType.REBOUND
        return prev.parity.flipped(), ResetType.NONE

    def adjust_rotation(self, candidate, context, reset_type, start, end) -> tuple[float, float]:
        prev = context.previous
        single_dots = (
            len(candidate.notes) == 1
            and candidate.all_dots
            and len(prev.notes) == 1
            and _all_dot_swing(prev)
        )
        if reset_type is ResetType.BOMB and single_dots:
            return max(-45.0, min(45.0, start)), max(-45.0, min(45.0, end))
        return start, end


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def bomb_in_swing_path(
    step: GridPos,
    start: GridPos,
    bomb_density: np.ndarray,
    spaces: int = 5,
) -> bool:
    """Walk ``spaces`` cells from ``start`` along ``step`` looking for bombs."""
    for i in range(spaces):
        x, y = clamp_position(start[0] + step[0] * i, start[1] + step[1] * i)
        if bomb_density[x, y] > 0:
            return True
    return False


def build_record(
    notes,
    candidate: SwingCandidate,
    parity: Parity,
    reset_type: ResetType,
    start_rotation: float,
    end_rotation: float,
    time_domain: TimeDomain,
    previous: SwingRecord | None = None,
    upside_down: bool = False,
    lateral_offset: int = 0,
) -> SwingRecord:
    """Assemble a SwingRecord, filling timing from the tempo map.

    EBPM is measured from the previous swing's last note to this swing's
    first note and doubled for resets, since the player swings twice.
    """
    first, last = notes[0], notes[-1]
    ebpm = 0.0
    if previous is not None:
        ebpm = time_domain.swing_ebpm(previous.last_note.beat, first.beat)
        if reset_type is not ResetType.NONE:
            ebpm *= 2
    return SwingRecord(
        parity=parity,
        swing_type=candidate.swing_type,
        reset_type=reset_type,
        start_beat=first.beat,
        end_beat=last.beat,
        start=Position(first.x, first.y, start_rotation),
        end=Position(last.x, last.y, end_rotation),
        right_hand=candidate.right_hand,
        start_seconds=time_domain.to_real_time(first.beat),
        end_seconds=time_domain.to_real_time(last.beat),
        ebpm=ebpm,
        upside_down=upside_down,
        lateral_offset=lateral_offset,
        notes=tuple(notes),
    )


def first_swing(
    candidate: SwingCandidate,
    time_domain: TimeDomain,
    lateral_offset: int = 0,
) -> SwingRecord:
    """Seed a hand's first swing from its own entry direction.

    Up-ish openers start on a backhand, everything else on a forehand.
    """
    parity = seed_parity(candidate.first.direction)
    table = afn_table(parity, candidate.right_hand)
    return build_record(
        candidate.notes,
        candidate,
        parity,
        ResetType.NONE,
        table[candidate.first.direction],
        table[candidate.last.direction],
        time_domain,
        lateral_offset=lateral_offset,
    )


PARITY_METHODS: dict[str, type[ParityMethod]] = {
    "generic": GenericParityCheck,
    "experimental": ExperimentalParityCheck,
    "retro": RetroParityCheck,
}


def get_parity_method(name: str) -> ParityMethod:
    """Instantiate a parity strategy by name.

    Raises:
        ValueError: If ``name`` is not a known strategy.
    """
    try:
        return PARITY_METHODS[name.lower()]()
    except KeyError:
        raise ValueError(
            f"Unknown parity method: {name!r} (expected one of {sorted(PARITY_METHODS)})"
        ) from None
