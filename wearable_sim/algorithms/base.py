"""
Heart-rate algorithm contract
Shared result types and the strategy interface every firmware variant implements
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np

from ..sensors.ppg.config import EmitterConfiguration, PPGConfig, SimulationParameters

logger = logging.getLogger(__name__)


class AlgorithmStatus(Enum):
    SCANNING = 'Scanning'
    LOCKED = 'Locked'
    NOISE_ERROR = 'NoiseError'
    WEAK_SIGNAL = 'WeakSignal'
    TRACKED = 'Tracked'
    INFERRING = 'Inferring'
    LOST = 'Lost'


class AlgorithmKind(Enum):
    """Firmware variants, keyed by the configuration layer's option id."""

    PEAK_DETECTOR = 'basic_algo'
    AUTOCORRELATOR = 'dsp_algo'
    CONFIDENCE = 'ml_algo'


@dataclass(frozen=True)
class AlgorithmResult:
    """Heart-rate estimate for one algorithm tick; never partially updated."""

    status: AlgorithmStatus
    heart_rate_bpm: Optional[int] = None

    @property
    def has_estimate(self) -> bool:
        return self.heart_rate_bpm is not None

    @classmethod
    def scanning(cls) -> 'AlgorithmResult':
        return cls(status=AlgorithmStatus.SCANNING)

    def __str__(self):
        hr = self.heart_rate_bpm if self.has_estimate else '--'
        return f"{hr} BPM [{self.status.value}]"


def _frozen(values) -> np.ndarray:
    array = np.array(values, dtype=float)
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class BufferSnapshot:
    """
    Consistent copy of every buffer, taken in one critical section.

    Arrays are read-only; channels the emitter does not provide are empty.
    """

    emitter: EmitterConfiguration
    sample_period: float
    raw: np.ndarray = field(default_factory=lambda: _frozen([]))
    filtered: np.ndarray = field(default_factory=lambda: _frozen([]))
    raw_green: np.ndarray = field(default_factory=lambda: _frozen([]))
    raw_red: np.ndarray = field(default_factory=lambda: _frozen([]))
    raw_ir: np.ndarray = field(default_factory=lambda: _frozen([]))
    filtered_red: np.ndarray = field(default_factory=lambda: _frozen([]))
    filtered_ir: np.ndarray = field(default_factory=lambda: _frozen([]))

    @classmethod
    def from_sequences(cls, emitter: EmitterConfiguration, sample_period: float, **channels) -> 'BufferSnapshot':
        """
        Build a snapshot from plain sequences.

        Args:
            emitter: Emitter configuration the data was produced with
            sample_period: Seconds between samples
            **channels: Any of the array fields, as sequences of floats

        Returns:
            BufferSnapshot with read-only copies of the given channels
        """
        return cls(
            emitter=emitter,
            sample_period=sample_period,
            **{name: _frozen(values) for name, values in channels.items()},
        )

    def __len__(self) -> int:
        return len(self.raw)

    @property
    def duration(self) -> float:
        """Seconds covered by the primary channel."""
        return len(self.raw) * self.sample_period


def normalize(values: np.ndarray) -> np.ndarray:
    """Mean-subtracted copy."""
    x = np.asarray(values, dtype=float)
    if x.size == 0:
        return x
    return x - np.mean(x)


class AlgorithmStrategy(ABC):
    """
    Heart-rate estimation firmware.

    Subclasses implement _estimate(); evaluate() enforces the shared
    minimum-data rule so no variant ever estimates from a short buffer.
    """

    kind: AlgorithmKind
    name: str = ''
    complexity: str = ''

    def __init__(self, config: Optional[PPGConfig] = None):
        self.config = config if config else PPGConfig()

    def evaluate(self, snapshot: BufferSnapshot, params: SimulationParameters) -> AlgorithmResult:
        """
        Estimate heart rate from a buffer snapshot.

        Args:
            snapshot: Consistent copy of the sample buffers
            params: Current simulation parameters

        Returns:
            AlgorithmResult; Scanning with no estimate while fewer than
            min_samples are buffered
        """
        if len(snapshot) < self.config.min_samples:
            return AlgorithmResult.scanning()
        return self._estimate(snapshot, params.clamped())

    @abstractmethod
    def _estimate(self, snapshot: BufferSnapshot, params: SimulationParameters) -> AlgorithmResult:
        ...

    def __repr__(self):
        return f"<{type(self).__name__}(kind={self.kind.value})>"
