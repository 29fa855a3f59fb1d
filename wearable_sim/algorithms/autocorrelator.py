"""
DSP firmware
Autocorrelation heart rate on the filtered primary channel
"""

import logging
from typing import Optional, Tuple

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


class Autocorrelator(AlgorithmStrategy):
    """
    Picks the beat period at which the filtered signal matches itself.

    The search covers lags for 40-200 BPM. The signal is mean-subtracted and
    scaled to unit variance, so the acceptance threshold is a correlation
    value independent of signal amplitude. Costs O(n * lag range) per tick.
    """

    kind = AlgorithmKind.AUTOCORRELATOR
    name = 'DSP Filtering'
    complexity = 'Medium'

    def lag_range(self, sample_period: float) -> Tuple[int, int]:
        """
        Inclusive lag bounds for the plausible heart-rate range.

        Returns:
            (lag_min, lag_max) in samples
        """
        sample_rate = 1.0 / sample_period
        lag_min = int(round(sample_rate * 60.0 / self.config.max_bpm))
        lag_max = int(round(sample_rate * 60.0 / self.config.min_bpm))
        return max(1, lag_min), lag_max

    def correlogram(self, signal: np.ndarray, sample_period: float) -> Tuple[np.ndarray, np.ndarray]:
        """
        Mean lag product for every lag in the window.

        Args:
            signal: Normalized samples
            sample_period: Seconds between samples

        Returns:
            (lags, correlations); both empty when the signal is too short
            for any lag in the window
        """
        n = signal.size
        lag_min, lag_max = self.lag_range(sample_period)
        lags = np.arange(lag_min, min(lag_max, n - 1) + 1)
        corrs = np.array([np.dot(signal[:n - lag], signal[lag:]) / (n - lag) for lag in lags], dtype=float)
        return lags, corrs

    def pick_peak(self, corrs: np.ndarray) -> Optional[int]:
        """
        Index of the shortest-lag local maximum that comes close to the best
        correlation in the window.

        Multiples of the beat period correlate about as well as the period
        itself, so the global maximum alone can land on a harmonic. Exact
        ties keep the first index.

        Returns:
            Index into corrs, or None for an empty correlogram
        """
        if corrs.size == 0:
            return None

        best = float(np.max(corrs))
        floor = best - (1.0 - self.config.harmonic_tolerance) * abs(best)
        for i, corr in enumerate(corrs):
            if corr < floor:
                continue
            if i > 0 and corr < corrs[i - 1]:
                continue
            if i < corrs.size - 1 and corr < corrs[i + 1]:
                continue
            return i

        return int(np.argmax(corrs))

    def best_lag(self, signal: np.ndarray, sample_period: float) -> Tuple[Optional[int], float]:
        """
        Fundamental lag of the signal within the window.

        Returns:
            (lag, correlation); lag is None when the signal is too short
            for any lag in the window
        """
        lags, corrs = self.correlogram(signal, sample_period)
        i = self.pick_peak(corrs)
        if i is None:
            return None, -np.inf
        return int(lags[i]), float(corrs[i])

    @staticmethod
    def refine_lag(lags: np.ndarray, corrs: np.ndarray, i: int) -> float:
        """Sub-sample lag from a parabola through the peak and its neighbours."""
        if 0 < i < corrs.size - 1:
            a, b, c = corrs[i - 1], corrs[i], corrs[i + 1]
            denom = a - 2 * b + c
            if denom < 0:
                return float(lags[i]) + 0.5 * (a - c) / denom
        return float(lags[i])

    def _estimate(self, snapshot: BufferSnapshot, params: SimulationParameters) -> AlgorithmResult:
        x = normalize(snapshot.filtered)
        std = float(np.std(x)) if x.size else 0.0
        if not np.isfinite(std) or std < 1e-12:
            return AlgorithmResult(status=AlgorithmStatus.WEAK_SIGNAL)

        lags, corrs = self.correlogram(x / std, snapshot.sample_period)
        i = self.pick_peak(corrs)
        if i is None or corrs[i] <= self.config.autocorrelation_threshold:
            corr = float(corrs[i]) if i is not None else float('nan')
            logger.debug(f"Autocorrelation rejected: corr={corr:.3f}")
            return AlgorithmResult(status=AlgorithmStatus.WEAK_SIGNAL)

        lag = self.refine_lag(lags, corrs, i)
        bpm = 60.0 / (lag * snapshot.sample_period)
        return AlgorithmResult(status=AlgorithmStatus.TRACKED, heart_rate_bpm=int(round(bpm)))
