"""
Analog Front-End Filter
Single-pole low-pass approximation of the AFE anti-aliasing stage
"""

import logging
import math
from typing import Optional, Sequence

import numpy as np
from scipy import signal

logger = logging.getLogger(__name__)

MIN_CUTOFF_HZ = 0.01


class AnalogFilter:
    """
    Exponential moving average y = a*x + (1 - a)*y_prev.

    The smoothing constant comes from the cutoff frequency through the RC
    one-pole mapping a = dt / (RC + dt), RC = 1 / (2*pi*fc). The first
    sample after construction or reset() seeds the state with itself, so
    there is no start-up transient from zero.
    """

    def __init__(self, sample_rate: float):
        """
        Args:
            sample_rate: Sampling frequency in Hz
        """
        self.sample_rate = sample_rate
        self._last: Optional[float] = None

    @property
    def last_output(self) -> Optional[float]:
        """Filter state; None until the first sample."""
        return self._last

    def alpha(self, cutoff_hz: float) -> float:
        """
        Smoothing constant for a cutoff frequency.

        Args:
            cutoff_hz: -3 dB frequency, clamped to a small positive floor

        Returns:
            Alpha in (0, 1]
        """
        dt = 1.0 / self.sample_rate
        rc = 1.0 / (2 * math.pi * max(cutoff_hz, MIN_CUTOFF_HZ))
        return dt / (rc + dt)

    def step(self, raw: float, cutoff_hz: float) -> float:
        """
        Filter one sample.

        Args:
            raw: Input sample
            cutoff_hz: Current cutoff frequency

        Returns:
            Filtered sample
        """
        if self._last is None:
            self._last = float(raw)
            return self._last

        a = self.alpha(cutoff_hz)
        self._last = a * raw + (1.0 - a) * self._last
        return self._last

    def filter_block(self, samples: Sequence[float], cutoff_hz: float) -> np.ndarray:
        """
        Filter consecutive samples, carrying state across calls.

        Runs the same recursion as step() through scipy's lfilter, with the
        stored output as initial condition.

        Args:
            samples: Input samples in time order
            cutoff_hz: Cutoff frequency for the whole block

        Returns:
            Filtered samples, same length as input
        """
        x = np.asarray(samples, dtype=float)
        if x.size == 0:
            return x

        a = self.alpha(cutoff_hz)
        previous = x[0] if self._last is None else self._last

        y, _ = signal.lfilter([a], [1.0, a - 1.0], x, zi=[(1.0 - a) * previous])
        self._last = float(y[-1])
        return y

    def reset(self):
        """Forget the filter state."""
        self._last = None

    def __repr__(self):
        return f"<AnalogFilter(fs={self.sample_rate}, last={self._last})>"
