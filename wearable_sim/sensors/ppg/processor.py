"""
PPG Signal Processor
SpO2 (ratio of ratios) and signal quality estimation
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from .config import EmitterConfiguration, PPGConfig, SimulationParameters

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Spo2Result:
    """SpO2 estimate; percentage is None when no estimate is possible."""

    percentage: Optional[int] = None
    reason: str = ''

    @property
    def available(self) -> bool:
        return self.percentage is not None

    @classmethod
    def unavailable(cls, reason: str) -> 'Spo2Result':
        return cls(percentage=None, reason=reason)

    def __str__(self):
        return f"{self.percentage}%" if self.available else '--'


def ac_dc(samples: Sequence[float]) -> Tuple[float, float]:
    """
    AC and DC components of a window.

    Args:
        samples: Filtered channel samples

    Returns:
        Tuple of (ac, dc): RMS of the mean-subtracted window and its mean
    """
    x = np.asarray(samples, dtype=float)
    if x.size == 0:
        return 0.0, 0.0
    dc = float(np.mean(x))
    ac = float(np.sqrt(np.mean((x - dc) ** 2)))
    return ac, dc


class Spo2Estimator:
    """
    Ratio-of-ratios SpO2.

    R = (redAC / redDC) / (irAC / irDC), SpO2 = 110 - 25 * R, clamped to the
    configured range. Every precondition failure yields an unavailable
    result instead of a computed value.
    """

    def __init__(self, config: Optional[PPGConfig] = None):
        self.config = config if config else PPGConfig()

    def ratio_of_ratios(
        self, red_ac: float, red_dc: float, ir_ac: float, ir_dc: float
    ) -> Tuple[Optional[float], Optional[str]]:
        """
        Compute R, or the reason it cannot be computed.

        Returns:
            (ratio, None) on success, (None, reason) for degenerate input
        """
        values = (red_ac, red_dc, ir_ac, ir_dc)
        if not all(math.isfinite(v) for v in values):
            return None, 'non-finite input'
        if abs(red_dc) < self.config.spo2_min_dc or abs(ir_dc) < self.config.spo2_min_dc:
            return None, 'zero DC'
        if red_ac < self.config.spo2_min_ac or ir_ac < self.config.spo2_min_ac:
            return None, 'weak signal'
        return (red_ac / red_dc) / (ir_ac / ir_dc), None

    def from_stats(self, red_ac: float, red_dc: float, ir_ac: float, ir_dc: float) -> Spo2Result:
        """
        SpO2 from precomputed AC/DC statistics.

        Returns:
            Spo2Result with an integer percentage, or unavailable
        """
        r, reason = self.ratio_of_ratios(red_ac, red_dc, ir_ac, ir_dc)
        if r is None:
            return Spo2Result.unavailable(reason)

        spo2 = 110.0 - 25.0 * r
        if not math.isfinite(spo2):
            return Spo2Result.unavailable('non-finite estimate')

        low, high = self.config.spo2_clamp
        return Spo2Result(percentage=int(min(max(round(spo2), low), high)))

    def estimate(
        self,
        red: Sequence[float],
        ir: Sequence[float],
        emitter: EmitterConfiguration,
    ) -> Spo2Result:
        """
        SpO2 from filtered red and IR windows.

        Args:
            red: Filtered red channel snapshot
            ir: Filtered IR channel snapshot
            emitter: Active emitter configuration

        Returns:
            Spo2Result
        """
        if not emitter.supports_spo2:
            return Spo2Result.unavailable(f"{emitter.value} has no red/IR pair")

        n = min(len(red), len(ir))
        if n < self.config.min_samples:
            return Spo2Result.unavailable('insufficient data')

        # Same window for both channels
        red_ac, red_dc = ac_dc(red[-n:])
        ir_ac, ir_dc = ac_dc(ir[-n:])
        return self.from_stats(red_ac, red_dc, ir_ac, ir_dc)


class QualityEstimator:
    """Signal-to-noise readouts. Never used to gate an algorithm."""

    def __init__(self, config: Optional[PPGConfig] = None):
        self.config = config if config else PPGConfig()

    def snr_db(self, params: SimulationParameters) -> float:
        """
        Closed-form SNR from the configured noise and motion levels.

        Returns:
            20*log10(signal / (noise + motion + eps)), floored at 0 dB
        """
        params = params.clamped()
        noise_power = params.noise_level + params.motion_artifact_level + self.config.snr_epsilon
        snr = 20.0 * math.log10(self.config.snr_signal_power / noise_power)
        return max(0.0, snr)

    def measured_snr_db(self, raw: Sequence[float], filtered: Sequence[float]) -> float:
        """
        SNR estimated from buffer contents.

        Treats the filtered signal as the signal and what the filter removed
        (raw - filtered) as noise.

        Returns:
            10*log10(var(filtered) / var(raw - filtered)), floored at 0 dB;
            0.0 when the windows are empty or degenerate
        """
        n = min(len(raw), len(filtered))
        if n < 2:
            return 0.0

        x = np.asarray(raw[-n:], dtype=float)
        y = np.asarray(filtered[-n:], dtype=float)
        signal_var = float(np.var(y))
        noise_var = float(np.var(x - y))

        if signal_var <= 0.0:
            return 0.0
        if noise_var <= self.config.snr_epsilon ** 2 * signal_var:
            # Noise below resolution: report the ceiling implied by epsilon
            return 20.0 * math.log10(1.0 / self.config.snr_epsilon)

        return max(0.0, 10.0 * math.log10(signal_var / noise_var))
