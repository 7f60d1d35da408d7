"""Analysis configuration.

Defaults live in the AnalysisConfig schema; YAML files such as
``configs/analysis.yaml`` and ``key=value`` dotlist overrides are merged
on top with OmegaConf, which also type-checks every value.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from omegaconf import OmegaConf

logger = logging.getLogger(__name__)


@dataclass
class AnalysisConfig:
    parity_method: str = "generic"  # generic | experimental | retro
    slider_precision_ms: float = 59.0  # largest gap between notes of one swing
    undodge_seconds: float = 0.35  # time after a dodge wall before stepping back
    reset_filler_max_gap: float = 1.0  # beats
    reset_filler_duration: float = 0.1  # beats
    doubles_threshold: float = 0.05  # ms between first notes of a double


def load_config(
    path: Path | str | None = None,
    overrides: Sequence[str] | None = None,
) -> AnalysisConfig:
    """Build an AnalysisConfig from defaults, an optional YAML file and overrides.

    Args:
        path: YAML file whose keys are AnalysisConfig fields.
        overrides: Dotlist entries, e.g. ``["parity_method=retro"]``.

    Returns:
        The merged, validated config.
    """
    layers = [OmegaConf.structured(AnalysisConfig)]
    if path is not None:
        logger.info("Loading analysis config from %s", path)
        layers.append(OmegaConf.load(Path(path)))
    if overrides:
        layers.append(OmegaConf.from_dotlist(list(overrides)))
    cfg = OmegaConf.merge(*layers)
    return OmegaConf.to_object(cfg)
