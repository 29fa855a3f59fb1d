"""
AI/ML estimation firmware
Stands in for a learned model: trusts the signal while its quality allows
"""

import logging
from typing import Optional

import numpy as np

from ..sensors.ppg.config import PPGConfig, SimulationParameters
from ..sensors.ppg.processor import QualityEstimator
from .base import (
    AlgorithmKind,
    AlgorithmResult,
    AlgorithmStatus,
    AlgorithmStrategy,
    BufferSnapshot,
)

logger = logging.getLogger(__name__)


class ConfidenceEstimator(AlgorithmStrategy):
    """
    Reports the underlying heart rate plus a small jitter while the SNR
    proxy stays above threshold, and Lost otherwise.

    Degrades gracefully where the peak detector fails hard; no model is
    actually evaluated.
    """

    kind = AlgorithmKind.CONFIDENCE
    name = 'AI/ML Estimation'
    complexity = 'High'

    def __init__(self, config: Optional[PPGConfig] = None, rng: Optional[np.random.Generator] = None):
        """
        Args:
            config: PPG configuration
            rng: Random source for the inference jitter
        """
        super().__init__(config)
        self.rng = rng if rng is not None else np.random.default_rng()
        self.quality = QualityEstimator(self.config)

    def _estimate(self, snapshot: BufferSnapshot, params: SimulationParameters) -> AlgorithmResult:
        snr = self.quality.snr_db(params)
        if snr <= self.config.confidence_snr_threshold:
            logger.debug(f"Confidence estimator lost lock (SNR {snr:.1f} dB)")
            return AlgorithmResult(status=AlgorithmStatus.LOST)

        jitter = (self.rng.random() - 0.5) * self.config.confidence_jitter_bpm
        bpm = int(round(params.heart_rate_bpm + jitter))
        return AlgorithmResult(status=AlgorithmStatus.INFERRING, heart_rate_bpm=bpm)
