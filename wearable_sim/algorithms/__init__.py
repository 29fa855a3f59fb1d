"""
Firmware heart-rate algorithms

Three interchangeable strategies behind one evaluate() contract:
- PeakDetector ('basic_algo'): zero crossings, fails hard under artifacts
- Autocorrelator ('dsp_algo'): periodicity search on the filtered signal
- ConfidenceEstimator ('ml_algo'): SNR-gated inference, degrades gracefully
"""

from typing import Optional

import numpy as np

from ..sensors.ppg.config import PPGConfig
from .autocorrelator import Autocorrelator
from .base import (
    AlgorithmKind,
    AlgorithmResult,
    AlgorithmStatus,
    AlgorithmStrategy,
    BufferSnapshot,
    normalize,
)
from .confidence import ConfidenceEstimator
from .peak_detector import PeakDetector, count_falling_crossings


def create_strategy(
    kind: AlgorithmKind,
    config: Optional[PPGConfig] = None,
    rng: Optional[np.random.Generator] = None,
) -> AlgorithmStrategy:
    """
    Build the strategy for an algorithm kind.

    Args:
        kind: Selected firmware variant
        config: PPG configuration shared by all variants
        rng: Random source, used by variants that need one

    Returns:
        AlgorithmStrategy instance
    """
    if kind is AlgorithmKind.PEAK_DETECTOR:
        return PeakDetector(config)
    if kind is AlgorithmKind.AUTOCORRELATOR:
        return Autocorrelator(config)
    if kind is AlgorithmKind.CONFIDENCE:
        return ConfidenceEstimator(config, rng=rng)
    raise ValueError(f"Unknown algorithm kind: {kind}")


__all__ = [
    'AlgorithmKind',
    'AlgorithmResult',
    'AlgorithmStatus',
    'AlgorithmStrategy',
    'Autocorrelator',
    'BufferSnapshot',
    'ConfidenceEstimator',
    'PeakDetector',
    'count_falling_crossings',
    'create_strategy',
    'normalize',
]
