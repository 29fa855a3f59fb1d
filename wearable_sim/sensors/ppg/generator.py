"""
Synthetic PPG Signal Generator
Multi-wavelength photoplethysmography samples from simulation parameters
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from .config import EmitterConfiguration, PPGConfig, SimulationParameters

logger = logging.getLogger(__name__)

# Pulse lobes: (phase centre, width, amplitude)
SYSTOLIC_LOBE = (0.15, 0.12, 1.0)
DIASTOLIC_LOBE = (0.45, 0.10, 0.4)


@dataclass(frozen=True)
class ChannelSample:
    """One reading per active wavelength channel; inactive channels are None."""

    timestamp: float
    green: Optional[float] = None
    red: Optional[float] = None
    ir: Optional[float] = None

    def value(self, channel: str) -> Optional[float]:
        return getattr(self, channel)


def pulse_shape(phase: float) -> float:
    """
    Composite systolic + diastolic pulse at a phase within the beat.

    Two Gaussian lobes measured on the wrapped phase distance, so the
    waveform is continuous across beat boundaries. Together they stay above
    their cycle mean over a single contiguous interval, giving one dicrotic
    beat per cycle rather than two separate bumps.

    Args:
        phase: Position within the cardiac cycle, any real (wrapped to [0, 1))

    Returns:
        Pulse amplitude, 0 at diastole and about 1 at the systolic peak
    """
    value = 0.0
    for centre, width, amplitude in (SYSTOLIC_LOBE, DIASTOLIC_LOBE):
        distance = ((phase - centre + 0.5) % 1.0) - 0.5
        value += amplitude * math.exp(-0.5 * (distance / width) ** 2)
    return value


class SignalGenerator:
    """
    Synthetic PPG source.

    Keeps its own cardiac phase and simulation time. Each sample is
    DC - pulse * AC + white noise + motion wander (+ respiration), computed
    only for the channels the emitter configuration provides.
    """

    def __init__(
        self,
        config: Optional[PPGConfig] = None,
        emitter: EmitterConfiguration = EmitterConfiguration.MULTI,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Initialize signal generator

        Args:
            config: PPG configuration (sampling and signal model constants)
            emitter: Which wavelength channels exist
            rng: Random source for sensor noise; seed it for reproducible runs
        """
        self.config = config if config else PPGConfig()
        self.emitter = emitter
        self.rng = rng if rng is not None else np.random.default_rng()

        self.phase = 0.0
        self.time = 0.0
        self.sample_count = 0

        logger.info(
            f"Signal generator initialized "
            f"(emitter: {emitter.value}, {self.config.sample_rate:.0f} Hz)"
        )

    def reset(self):
        """Rewind phase and time to zero."""
        self.phase = 0.0
        self.time = 0.0
        self.sample_count = 0

    def generate(self, params: SimulationParameters, count: int = 1) -> List[ChannelSample]:
        """
        Produce the next `count` samples.

        Args:
            params: Current simulation parameters (clamped before use)
            count: Number of consecutive samples

        Returns:
            List of ChannelSample in time order
        """
        params = params.clamped()
        return [self._next_sample(params) for _ in range(count)]

    def _next_sample(self, params: SimulationParameters) -> ChannelSample:
        dt = self.config.sample_period

        self.phase = (self.phase + params.heart_rate_bpm / 60.0 * dt) % 1.0
        self.time += dt
        self.sample_count += 1

        pulse = pulse_shape(self.phase)
        wander = (
            math.sin(2 * math.pi * self.config.motion_frequency_hz * self.time)
            * params.motion_artifact_level * self.config.motion_gain
        )
        breathing = (
            math.sin(2 * math.pi * self.config.respiration_frequency_hz * self.time)
            * params.respiration_level * self.config.respiration_gain
        )

        values = {}
        for channel in self.emitter.channels:
            dc = self.channel_dc(channel)
            ac = dc * self.perfusion_index(channel, params)
            noise = (self.rng.random() - 0.5) * params.noise_level * self.config.noise_gain
            value = dc * (1.0 + breathing) - pulse * ac + noise + wander

            if not math.isfinite(value):
                logger.warning(f"Non-finite {channel} sample at t={self.time:.3f}s, using baseline")
                value = dc
            values[channel] = value

        return ChannelSample(timestamp=self.time, **values)

    def channel_dc(self, channel: str) -> float:
        """Baseline (DC) level of a channel: IR > red > green."""
        return {
            'ir': self.config.dc_ir,
            'red': self.config.dc_red,
            'green': self.config.dc_green,
        }[channel]

    def perfusion_index(self, channel: str, params: SimulationParameters) -> float:
        """
        AC/DC ratio for a channel.

        Red is scaled by (110 - SpO2) / 25, the inverse of the ratio-of-ratios
        calibration, so an ideal estimator recovers the target SpO2.
        """
        if channel == 'green':
            return self.config.perfusion_index_green
        if channel == 'red':
            spo2_factor = (110 - params.spo2_target) / 25.0
            return self.config.perfusion_index_ir * spo2_factor
        return self.config.perfusion_index_ir

    def __repr__(self):
        return f"<SignalGenerator(emitter={self.emitter.value}, t={self.time:.2f}s)>"
