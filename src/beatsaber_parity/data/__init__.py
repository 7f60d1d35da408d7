"""Beatmap ingestion and tempo mapping."""

from beatsaber_parity.data.beatmap import (
    BeatmapInfo,
    BombNote,
    BpmChange,
    BurstSlider,
    ColorNote,
    DifficultyInfo,
    MapObjects,
    Obstacle,
    Slider,
    parse_difficulty_dat,
    parse_difficulty_dat_json,
    parse_info_dat,
    parse_info_dat_json,
    with_timestamps,
)
from beatsaber_parity.data.timing import TimeDomain

__all__ = [
    # Beatmap
    "BeatmapInfo",
    "BombNote",
    "BpmChange",
    "BurstSlider",
    "ColorNote",
    "DifficultyInfo",
    "MapObjects",
    "Obstacle",
    "Slider",
    "parse_difficulty_dat",
    "parse_difficulty_dat_json",
    "parse_info_dat",
    "parse_info_dat_json",
    "with_timestamps",
    # Timing
    "TimeDomain",
]
