"""
Basic peak detection firmware
Zero-crossing heart rate on the raw primary channel
"""

import logging

import numpy as np

from ..sensors.ppg.config import SimulationParameters
from .base import (
    AlgorithmKind,
    AlgorithmResult,
    AlgorithmStatus,
    AlgorithmStrategy,
    BufferSnapshot,
    normalize,
)

logger = logging.getLogger(__name__)


def count_falling_crossings(signal: np.ndarray) -> int:
    """
    Count negative-going zero crossings.

    Args:
        signal: Mean-subtracted samples

    Returns:
        Number of indices where the signal goes from >= 0 to < 0
    """
    if signal.size < 2:
        return 0
    return int(np.count_nonzero((signal[:-1] >= 0) & (signal[1:] < 0)))


class PeakDetector(AlgorithmStrategy):
    """
    Counts one falling mean crossing per beat.

    Cheap and exact on a clean signal, but any motion or noise above the
    gating thresholds makes it give up with NoiseError instead of trying.
    """

    kind = AlgorithmKind.PEAK_DETECTOR
    name = 'Basic Peak Detect'
    complexity = 'Low'

    def _estimate(self, snapshot: BufferSnapshot, params: SimulationParameters) -> AlgorithmResult:
        if (params.motion_artifact_level > self.config.peak_motion_threshold
                or params.noise_level > self.config.peak_noise_threshold):
            logger.debug(
                f"Peak detector gated: motion={params.motion_artifact_level:.2f} "
                f"noise={params.noise_level:.2f}"
            )
            return AlgorithmResult(status=AlgorithmStatus.NOISE_ERROR)

        crossings = count_falling_crossings(normalize(snapshot.raw))
        duration = snapshot.duration
        if crossings == 0 or duration <= 0:
            return AlgorithmResult.scanning()

        bpm = crossings / duration * 60.0
        return AlgorithmResult(status=AlgorithmStatus.LOCKED, heart_rate_bpm=int(round(bpm)))
