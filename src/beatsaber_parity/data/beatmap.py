"""Beat Saber beatmap ingestion.

Parses Info.dat and difficulty .dat files (v2 and v3 layouts) into the
normalized, immutable event lists consumed by the swing engine:
colorNotes, bombNotes, obstacles, sliders (arcs), burstSliders (chains)
and official BPM changes.

This is the validation boundary: grid coordinates are clamped here and
every event can be stamped with its real-time millisecond value.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from beatsaber_parity.data.timing import TimeDomain

logger = logging.getLogger(__name__)

GRID_COLUMNS = 4
GRID_ROWS = 3

LEFT_COLOR = 0
RIGHT_COLOR = 1


# ---------------------------------------------------------------------------
# Dataclasses (fields mirror v3 JSON shorthand)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ColorNote:
    """A standard directional note (v3 colorNotes)."""

    beat: float  # b
    x: int  # column 0-3
    y: int  # row 0-2
    color: int  # c: 0=red (left), 1=blue (right)
    direction: int  # d: 0-8
    angle_offset: int = 0  # a
    ms: float | None = None  # resolved real time


@dataclass(frozen=True, slots=True)
class BombNote:
    """A bomb note (v3 bombNotes)."""

    beat: float  # b
    x: int  # column 0-3
    y: int  # row 0-2
    ms: float | None = None


@dataclass(frozen=True, slots=True)
class Obstacle:
    """A wall/obstacle (v3 obstacles)."""

    beat: float  # b
    duration: float  # d
    x: int  # column 0-3
    y: int  # row 0-2
    width: int  # w
    height: int  # h (1-5)
    ms: float | None = None


@dataclass(frozen=True, slots=True)
class Slider:
    """An arc/slider (v3 sliders)."""

    color: int  # c
    beat: float  # b  (head)
    x: int  # head column
    y: int  # head row
    direction: int  # d  head direction
    mu: float  # head curvature multiplier
    tail_beat: float  # tb
    tail_x: int  # tx
    tail_y: int  # ty
    tail_direction: int  # tc
    tail_mu: float  # tmu
    mid_anchor_mode: int = 0  # m
    ms: float | None = None


@dataclass(frozen=True, slots=True)
class BurstSlider:
    """A burst slider / chain (v3 burstSliders).

    The head is struck like a regular note; the tail only extends the swing.
    """

    color: int  # c
    beat: float  # b  (head)
    x: int  # head column
    y: int  # head row
    direction: int  # d  head direction
    tail_beat: float  # tb
    tail_x: int  # tx
    tail_y: int  # ty
    slice_count: int = 3  # sc
    squish: float = 0.5  # s
    ms: float | None = None
    tail_ms: float | None = None

    @property
    def angle_offset(self) -> int:
        return 0


@dataclass(frozen=True, slots=True)
class BpmChange:
    """An official BPM change (v3 bpmEvents / v2 type-100 events)."""

    beat: float  # b
    bpm: float  # m


@dataclass(slots=True)
class DifficultyInfo:
    """Metadata for one difficulty within a beatmap set."""

    difficulty: str  # e.g. "Expert"
    difficulty_rank: int  # e.g. 7
    filename: str  # e.g. "ExpertStandard.dat"
    characteristic: str = "Standard"  # e.g. "Standard", "OneSaber", "Lightshow"


@dataclass(slots=True)
class BeatmapInfo:
    """Parsed Info.dat metadata needed to time a difficulty."""

    song_name: str
    song_author: str
    level_author: str
    bpm: float
    song_time_offset: float
    difficulties: list[DifficultyInfo] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class MapObjects:
    """All objects of one difficulty that matter for swing prediction."""

    version: str = ""
    color_notes: tuple[ColorNote, ...] = ()
    bomb_notes: tuple[BombNote, ...] = ()
    obstacles: tuple[Obstacle, ...] = ()
    sliders: tuple[Slider, ...] = ()
    burst_sliders: tuple[BurstSlider, ...] = ()
    bpm_changes: tuple[BpmChange, ...] = ()

    def hand_notes(self, right_hand: bool) -> list[ColorNote | BurstSlider]:
        """Notes and chain heads owned by one hand, in beat order.

        A v3 chain head sits on a colour note of the same beat and cell; that
        note is dropped so the chain is the only swing there.
        """
        color = RIGHT_COLOR if right_hand else LEFT_COLOR
        chains = [c for c in self.burst_sliders if c.color == color]
        heads = {(c.beat, c.x, c.y) for c in chains}
        notes: list[ColorNote | BurstSlider] = [
            n for n in self.color_notes if n.color == color and (n.beat, n.x, n.y) not in heads
        ]
        notes.extend(chains)
        # sorted() is stable: same-beat notes keep file order, chains after notes
        return sorted(notes, key=lambda n: n.beat)


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------


def parse_info_dat(path: Path | str) -> BeatmapInfo:
    """Parse a Beat Saber Info.dat file.

    Args:
        path: Path to Info.dat file.

    Returns:
        BeatmapInfo with song timing metadata and difficulty list.
    """
    path = Path(path)
    data = json.loads(path.read_text(encoding="utf-8"))
    return parse_info_dat_json(data)


def parse_info_dat_json(data: dict[str, Any]) -> BeatmapInfo:
    """Parse Info.dat from an already-loaded JSON dict.

    Args:
        data: Parsed JSON dictionary from Info.dat (v2 layout).

    Returns:
        BeatmapInfo with song timing metadata and difficulty list.
    """
    difficulties: list[DifficultyInfo] = []
    for bset in data.get("_difficultyBeatmapSets", []):
        char = bset.get("_beatmapCharacteristicName", "Standard")
        for diff in bset.get("_difficultyBeatmaps", []):
            difficulties.append(
                DifficultyInfo(
                    difficulty=diff.get("_difficulty", ""),
                    difficulty_rank=diff.get("_difficultyRank", 0),
                    filename=diff.get("_beatmapFilename", ""),
                    characteristic=char,
                )
            )

    return BeatmapInfo(
        song_name=data.get("_songName", ""),
        song_author=data.get("_songAuthorName", ""),
        level_author=data.get("_levelAuthorName", ""),
        bpm=float(data.get("_beatsPerMinute", 120)),
        song_time_offset=float(data.get("_songTimeOffset", 0)),
        difficulties=difficulties,
    )


def parse_difficulty_dat(path: Path | str) -> MapObjects | None:
    """Parse a Beat Saber difficulty .dat file.

    Args:
        path: Path to difficulty .dat file (e.g., ExpertStandard.dat).

    Returns:
        MapObjects with all parsed objects, or None on unrecognised format.
    """
    path = Path(path)
    data = json.loads(path.read_text(encoding="utf-8"))
    return parse_difficulty_dat_json(data)


def parse_difficulty_dat_json(data: dict[str, Any]) -> MapObjects | None:
    """Parse a difficulty .dat from an already-loaded JSON dict.

    Supports both v2 (underscore-prefixed keys, _notes/_events/_obstacles) and
    v3 (camelCase keys, colorNotes/bombNotes/etc.) formats.

    Args:
        data: Parsed JSON dictionary from a difficulty .dat file.

    Returns:
        MapObjects with all parsed objects, or None on unrecognised format.
    """
    version = data.get("version", "")
    if version and not version.startswith("2"):
        return MapObjects(
            version=version,
            color_notes=tuple(_parse_color_note(n) for n in data.get("colorNotes", [])),
            bomb_notes=tuple(_parse_bomb_note(n) for n in data.get("bombNotes", [])),
            obstacles=tuple(_parse_obstacle(o) for o in data.get("obstacles", [])),
            sliders=tuple(_parse_slider(s) for s in data.get("sliders", [])),
            burst_sliders=tuple(_parse_burst_slider(bs) for bs in data.get("burstSliders", [])),
            bpm_changes=_sorted_bpm_changes(
                BpmChange(beat=float(e.get("b", 0)), bpm=float(e.get("m", 0)))
                for e in data.get("bpmEvents", [])
            ),
        )

    v2_version = data.get("_version", "")
    if v2_version:
        return _parse_difficulty_v2(data, v2_version)

    logger.warning("No version field found in difficulty .dat; skipping")
    return None


def _parse_difficulty_v2(data: dict[str, Any], version: str) -> MapObjects:
    """Parse a v2 difficulty .dat file into MapObjects.

    V2 format differences from v3:
    - All keys are underscore-prefixed (_notes, _obstacles, _events)
    - Bombs are embedded in _notes as _type=3 (not a separate bombNotes array)
    - Obstacles use _type (0=full-height, 1=crouch) instead of explicit y/height
    - Only 2.6 files carry _sliders; there are no chains
    - BPM changes are _events of _type 100 or _customData._BPMChanges

    Args:
        data: Parsed JSON dict from a v2 difficulty .dat.
        version: Version string (e.g. "2.2.0").

    Returns:
        MapObjects parsed from v2 data.
    """
    color_notes: list[ColorNote] = []
    bomb_notes: list[BombNote] = []

    for note in data.get("_notes", []):
        # Skip fake notes (Noodle Extensions decorative notes)
        cd = note.get("_customData", {})
        if cd.get("_fake", False):
            continue

        note_type = int(note.get("_type", 0))
        beat = float(note.get("_time", 0))
        x = _clamp_x(note.get("_lineIndex", 0))
        y = _clamp_y(note.get("_lineLayer", 0))

        if note_type == 3:
            bomb_notes.append(BombNote(beat=beat, x=x, y=y))
        elif note_type in (0, 1):
            direction = _clamp_direction(note.get("_cutDirection", 0))
            color_notes.append(
                ColorNote(beat=beat, x=x, y=y, color=note_type, direction=direction)
            )

    obstacles: list[Obstacle] = []
    for obs in data.get("_obstacles", []):
        obs_type = int(obs.get("_type", 0))
        # type 0 = full-height wall: y=0, height=5
        # type 1 = crouch wall:      y=2, height=3
        y = 2 if obs_type == 1 else 0
        height = 3 if obs_type == 1 else 5
        obstacles.append(
            Obstacle(
                beat=float(obs.get("_time", 0)),
                duration=float(obs.get("_duration", 0)),
                x=_clamp_x(obs.get("_lineIndex", 0)),
                y=y,
                width=max(1, min(4, int(obs.get("_width", 1)))),
                height=height,
            )
        )

    sliders = [
        Slider(
            color=int(s.get("_colorType", 0)),
            beat=float(s.get("_headTime", 0)),
            x=_clamp_x(s.get("_headLineIndex", 0)),
            y=_clamp_y(s.get("_headLineLayer", 0)),
            direction=_clamp_direction(s.get("_headCutDirection", 0)),
            mu=float(s.get("_headControlPointLengthMultiplier", 1.0)),
            tail_beat=float(s.get("_tailTime", 0)),
            tail_x=_clamp_x(s.get("_tailLineIndex", 0)),
            tail_y=_clamp_y(s.get("_tailLineLayer", 0)),
            tail_direction=_clamp_direction(s.get("_tailCutDirection", 0)),
            tail_mu=float(s.get("_tailControlPointLengthMultiplier", 1.0)),
            mid_anchor_mode=int(s.get("_sliderMidAnchorMode", 0)),
        )
        for s in data.get("_sliders", [])
    ]

    bpm_changes = [
        BpmChange(beat=float(e.get("_time", 0)), bpm=float(e.get("_floatValue", 0)))
        for e in data.get("_events", [])
        if int(e.get("_type", 0)) == 100
    ]
    custom = data.get("_customData", {}) or {}
    bpm_changes.extend(
        BpmChange(beat=float(c.get("_time", 0)), bpm=float(c.get("_BPM", 0)))
        for c in custom.get("_BPMChanges", [])
    )

    return MapObjects(
        version=version,
        color_notes=tuple(color_notes),
        bomb_notes=tuple(bomb_notes),
        obstacles=tuple(obstacles),
        sliders=tuple(sliders),
        burst_sliders=(),  # v2 has no chains
        bpm_changes=_sorted_bpm_changes(bpm_changes),
    )


def with_timestamps(objects: MapObjects, time_domain: TimeDomain) -> MapObjects:
    """Stamp every object lacking a real time with its millisecond value.

    Args:
        objects: Parsed map objects.
        time_domain: Tempo map used for the beat -> seconds conversion.

    Returns:
        New MapObjects where every ``ms`` (and chain ``tail_ms``) is set.
    """

    def _ms(beat: float) -> float:
        return time_domain.to_real_time(beat) * 1000.0

    def _stamp(obj):
        return obj if obj.ms is not None else replace(obj, ms=_ms(obj.beat))

    chains = []
    for chain in objects.burst_sliders:
        chain = _stamp(chain)
        if chain.tail_ms is None:
            chain = replace(chain, tail_ms=_ms(chain.tail_beat))
        chains.append(chain)

    return replace(
        objects,
        color_notes=tuple(_stamp(n) for n in objects.color_notes),
        bomb_notes=tuple(_stamp(b) for b in objects.bomb_notes),
        obstacles=tuple(_stamp(o) for o in objects.obstacles),
        sliders=tuple(_stamp(s) for s in objects.sliders),
        burst_sliders=tuple(chains),
    )


# ---------------------------------------------------------------------------
# Internal parsers for each object type
# ---------------------------------------------------------------------------


def _clamp_x(value: Any) -> int:
    # Mapping extensions allow out-of-bounds coords
    return max(0, min(GRID_COLUMNS - 1, int(value)))


def _clamp_y(value: Any) -> int:
    return max(0, min(GRID_ROWS - 1, int(value)))


def _clamp_direction(value: Any) -> int:
    return max(0, min(8, int(value)))


def _sorted_bpm_changes(changes) -> tuple[BpmChange, ...]:
    return tuple(sorted((c for c in changes if c.bpm > 0), key=lambda c: c.beat))


def _parse_color_note(d: dict[str, Any]) -> ColorNote:
    return ColorNote(
        beat=float(d.get("b", 0)),
        x=_clamp_x(d.get("x", 0)),
        y=_clamp_y(d.get("y", 0)),
        color=int(d.get("c", 0)),
        direction=_clamp_direction(d.get("d", 0)),
        angle_offset=int(d.get("a", 0)),
    )


def _parse_bomb_note(d: dict[str, Any]) -> BombNote:
    return BombNote(
        beat=float(d.get("b", 0)),
        x=_clamp_x(d.get("x", 0)),
        y=_clamp_y(d.get("y", 0)),
    )


def _parse_obstacle(d: dict[str, Any]) -> Obstacle:
    return Obstacle(
        beat=float(d.get("b", 0)),
        duration=float(d.get("d", 0)),
        x=_clamp_x(d.get("x", 0)),
        y=_clamp_y(d.get("y", 0)),
        width=int(d.get("w", 1)),
        height=int(d.get("h", 1)),
    )


def _parse_slider(d: dict[str, Any]) -> Slider:
    return Slider(
        color=int(d.get("c", 0)),
        beat=float(d.get("b", 0)),
        x=_clamp_x(d.get("x", 0)),
        y=_clamp_y(d.get("y", 0)),
        direction=_clamp_direction(d.get("d", 0)),
        mu=float(d.get("mu", 1.0)),
        tail_beat=float(d.get("tb", 0)),
        tail_x=_clamp_x(d.get("tx", 0)),
        tail_y=_clamp_y(d.get("ty", 0)),
        tail_direction=_clamp_direction(d.get("tc", 0)),
        tail_mu=float(d.get("tmu", 1.0)),
        mid_anchor_mode=int(d.get("m", 0)),
    )


def _parse_burst_slider(d: dict[str, Any]) -> BurstSlider:
    return BurstSlider(
        color=int(d.get("c", 0)),
        beat=float(d.get("b", 0)),
        x=_clamp_x(d.get("x", 0)),
        y=_clamp_y(d.get("y", 0)),
        direction=_clamp_direction(d.get("d", 0)),
        tail_beat=float(d.get("tb", 0)),
        tail_x=_clamp_x(d.get("tx", 0)),
        tail_y=_clamp_y(d.get("ty", 0)),
        slice_count=int(d.get("sc", 3)),
        squish=float(d.get("s", 0.5)),
    )
