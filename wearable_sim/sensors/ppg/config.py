"""
PPG Simulation Configuration
Sampling, buffering, tick cadence and algorithm thresholds
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Tuple


class EmitterConfiguration(Enum):
    """
    Optical emitter options, keyed by the configuration layer's option id.

    Decides which wavelength channels are physically present, which one is
    primary (fed to the heart-rate algorithms) and whether SpO2 is possible.
    """

    GREEN_ONLY = 'green_only'
    RED_IR = 'red_ir'
    MULTI = 'multi'

    @property
    def channels(self) -> Tuple[str, ...]:
        if self is EmitterConfiguration.GREEN_ONLY:
            return ('green',)
        if self is EmitterConfiguration.RED_IR:
            return ('red', 'ir')
        return ('green', 'red', 'ir')

    @property
    def primary_channel(self) -> str:
        """
        Channel used for heart rate.

        Green whenever a green emitter is fitted (it has the best pulsatile
        amplitude during motion), IR otherwise.
        """
        return 'green' if 'green' in self.channels else 'ir'

    @property
    def supports_spo2(self) -> bool:
        return 'red' in self.channels and 'ir' in self.channels


@dataclass(frozen=True)
class SimulationParameters:
    """
    User-facing simulation parameters.

    Replaced as a whole by the configuration layer on every edit; the
    simulation core only reads them, always through clamped().
    """

    heart_rate_bpm: int = 75
    spo2_target: int = 98
    motion_artifact_level: float = 0.10  # 0-1
    noise_level: float = 0.05  # 0-1
    filter_cutoff_hz: float = 5.0
    respiration_level: float = 0.0  # 0-1, slow baseline breathing

    # Legal ranges
    HEART_RATE_RANGE = (40, 180)
    SPO2_RANGE = (80, 100)
    MIN_CUTOFF_HZ = 0.01

    def clamped(self) -> 'SimulationParameters':
        """
        Return a copy with every field forced into its legal range.

        Returns:
            SimulationParameters safe to feed to the generator and algorithms.
        """
        lo_hr, hi_hr = self.HEART_RATE_RANGE
        lo_spo2, hi_spo2 = self.SPO2_RANGE
        return replace(
            self,
            heart_rate_bpm=int(min(max(round(self.heart_rate_bpm), lo_hr), hi_hr)),
            spo2_target=int(min(max(round(self.spo2_target), lo_spo2), hi_spo2)),
            motion_artifact_level=_unit(self.motion_artifact_level),
            noise_level=_unit(self.noise_level),
            filter_cutoff_hz=max(float(self.filter_cutoff_hz), self.MIN_CUTOFF_HZ),
            respiration_level=_unit(self.respiration_level),
        )

    @classmethod
    def defaults(cls) -> 'SimulationParameters':
        """Parameters restored by a system reset."""
        return cls()

    @classmethod
    def silent(cls, heart_rate_bpm: int = 75) -> 'SimulationParameters':
        """Clean signal: no noise, motion or respiration."""
        return cls(
            heart_rate_bpm=heart_rate_bpm,
            motion_artifact_level=0.0,
            noise_level=0.0,
            respiration_level=0.0,
        )


def _unit(value: float) -> float:
    value = float(value)
    if value != value:  # NaN
        return 0.0
    return min(max(value, 0.0), 1.0)


@dataclass
class PPGConfig:
    """
    Configuration for the simulated PPG front end and firmware algorithms.

    Controls sampling, buffer sizes, tick cadence, signal model constants
    and the thresholds each algorithm uses to accept or reject a result.
    """

    # Sampling settings
    sample_rate: float = 50.0  # Hz
    buffer_size: int = 200  # Samples kept per channel

    # Tick cadence
    physics_interval: float = 0.02  # 50 Hz physics tick
    algorithm_interval: float = 0.5  # Seconds between algorithm runs
    readout_history_size: int = 120  # Algorithm readouts kept for export

    # Signal model
    dc_ir: float = 1.0
    dc_red: float = 0.8
    dc_green: float = 0.6
    perfusion_index_ir: float = 0.05  # AC/DC ratio
    perfusion_index_green: float = 0.08
    noise_gain: float = 0.1  # k1: white noise amplitude at noise_level=1
    motion_gain: float = 0.2  # k2: wander amplitude at motion_level=1
    motion_frequency_hz: float = 0.4
    respiration_gain: float = 0.02  # k3: fraction of DC at respiration_level=1
    respiration_frequency_hz: float = 0.25

    # Algorithm settings
    min_samples: int = 50  # Below this every algorithm reports Scanning
    min_bpm: float = 40.0  # Autocorrelation search range
    max_bpm: float = 200.0

    # Peak detector gating (normalized parameter units)
    peak_motion_threshold: float = 0.15
    peak_noise_threshold: float = 0.2

    # Autocorrelator acceptance (correlation of unit-variance data)
    autocorrelation_threshold: float = 0.3
    harmonic_tolerance: float = 0.9  # Shortest peak within this fraction of the best wins

    # Confidence estimator
    confidence_snr_threshold: float = 0.0  # dB
    confidence_jitter_bpm: float = 3.0

    # SpO2 guards
    spo2_min_ac: float = 1e-4
    spo2_min_dc: float = 1e-9
    spo2_clamp: Tuple[int, int] = (85, 100)

    # Quality estimate
    snr_signal_power: float = 0.5
    snr_epsilon: float = 0.001

    def __post_init__(self):
        if self.buffer_size < 1:
            raise ValueError(f"buffer_size must be positive, got {self.buffer_size}")
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        if self.physics_interval <= 0 or self.algorithm_interval <= 0:
            raise ValueError("tick intervals must be positive")
        if not 0.0 < self.harmonic_tolerance <= 1.0:
            raise ValueError(f"harmonic_tolerance must be in (0, 1], got {self.harmonic_tolerance}")

    @property
    def sample_period(self) -> float:
        """Seconds between consecutive samples."""
        return 1.0 / self.sample_rate

    @property
    def points_per_tick(self) -> int:
        """
        Samples generated per physics tick.

        Returns:
            At least one sample, enough to keep the simulated sample rate
            when the physics tick is slower than the sample period.
        """
        return max(1, int(round(self.physics_interval * self.sample_rate)))

    @property
    def algorithm_every(self) -> int:
        """Physics ticks between algorithm ticks in stepped mode."""
        return max(1, int(round(self.algorithm_interval / self.physics_interval)))

    @classmethod
    def for_realtime(cls) -> 'PPGConfig':
        """
        Create a configuration for wall-clock operation.

        Returns:
            PPGConfig with the default 20 ms / 500 ms tick cadence.
        """
        return cls()

    @classmethod
    def for_testing(cls) -> 'PPGConfig':
        """
        Create a configuration for fast threaded tests.

        Ticks are shortened but keep the 25:1 cadence ratio.

        Returns:
            PPGConfig with 2 ms physics and 50 ms algorithm ticks.
        """
        return cls(
            physics_interval=0.002,
            algorithm_interval=0.05,
        )
