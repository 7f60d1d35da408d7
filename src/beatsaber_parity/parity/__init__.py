"""Swing segmentation, parity prediction and bomb-avoidance simulation."""

from beatsaber_parity.parity.classifier import SwingClassifier, classify_swings
from beatsaber_parity.parity.directions import CutDirection, Parity
from beatsaber_parity.parity.engine import SwingEngine, predict_swings
from beatsaber_parity.parity.grid import BombGrid, cluster_bombs
from beatsaber_parity.parity.methods import (
    ExperimentalParityCheck,
    GenericParityCheck,
    ParityConfig,
    ParityContext,
    ParityMethod,
    RetroParityCheck,
    get_parity_method,
)
from beatsaber_parity.parity.state import SwingContainer, SwingState, insert_reset_fillers
from beatsaber_parity.parity.swing import (
    Position,
    ResetType,
    SwingCandidate,
    SwingRecord,
    SwingType,
)

__all__ = [
    # Model
    "CutDirection",
    "Parity",
    "Position",
    "ResetType",
    "SwingCandidate",
    "SwingRecord",
    "SwingType",
    # Pipeline
    "BombGrid",
    "SwingClassifier",
    "SwingContainer",
    "SwingEngine",
    "SwingState",
    "classify_swings",
    "cluster_bombs",
    "insert_reset_fillers",
    "predict_swings",
    # Strategies
    "ExperimentalParityCheck",
    "GenericParityCheck",
    "ParityConfig",
    "ParityContext",
    "ParityMethod",
    "RetroParityCheck",
    "get_parity_method",
]
