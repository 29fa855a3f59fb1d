"""
Simulation Scheduler
Drives the physics tick (signal generation) and the algorithm tick (estimation)
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass, fields, replace
from typing import Callable, Dict, List, Optional

import numpy as np

from ..algorithms import (
    AlgorithmKind,
    AlgorithmResult,
    AlgorithmStrategy,
    BufferSnapshot,
    create_strategy,
)
from ..sensors.ppg import (
    AnalogFilter,
    EmitterConfiguration,
    PPGConfig,
    QualityEstimator,
    RingBuffer,
    SignalGenerator,
    SimulationParameters,
    Spo2Estimator,
    Spo2Result,
)
from .clock import MonotonicClock

logger = logging.getLogger(__name__)

CHANNELS = ('green', 'red', 'ir')


@dataclass(frozen=True)
class ProcessedPoint:
    """One charting point: raw channels plus the filtered primary signal."""

    time: float
    raw: float
    filtered: float
    dc: float
    ac: float
    raw_green: Optional[float] = None
    raw_red: Optional[float] = None
    raw_ir: Optional[float] = None

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class SimulationReadout:
    """Everything the display layer shows after one algorithm tick."""

    algorithm: AlgorithmKind
    result: AlgorithmResult
    spo2: Spo2Result
    snr_db: float
    measured_snr_db: float
    sample_count: int
    timestamp: float

    def as_dict(self) -> dict:
        return {
            'timestamp': round(self.timestamp, 4),
            'algorithm': self.algorithm.value,
            'status': self.result.status.value,
            'heart_rate_bpm': self.result.heart_rate_bpm,
            'spo2_percent': self.spo2.percentage,
            'snr_db': round(self.snr_db, 2),
            'measured_snr_db': round(self.measured_snr_db, 2),
            'sample_count': self.sample_count,
        }


class PeriodicTask:
    """
    Runs a callback at a fixed period in a background thread.

    Deadlines advance by exactly one interval per run, so the cadence does
    not drift with callback duration. Exceptions from the callback are
    logged and the loop keeps going.
    """

    def __init__(self, name: str, interval: float, callback: Callable[[], None], clock=None):
        """
        Args:
            name: Thread name
            interval: Seconds between runs
            callback: Work done every period
            clock: Time source with now() and wait(seconds, stop_event)
        """
        self.name = name
        self.interval = interval
        self.callback = callback
        self.clock = clock if clock else MonotonicClock()

        self.tick_count = 0
        self.stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.is_running:
            logger.warning(f"{self.name} already running")
            return

        self.stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0):
        """Signal the loop to stop and wait for the thread to exit."""
        self.stop_event.set()
        if self._thread is threading.current_thread():
            # Stopped from its own callback: the loop exits after this run
            return
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.error(f"{self.name} did not stop within {timeout}s")
        self._thread = None

    def _loop(self):
        logger.debug(f"{self.name} loop started")
        next_due = self.clock.now()

        while not self.stop_event.is_set():
            try:
                self.callback()
            except Exception as e:
                logger.error(f"Error in {self.name}: {e}", exc_info=True)
            self.tick_count += 1

            next_due += self.interval
            remaining = next_due - self.clock.now()
            if remaining < 0:
                logger.debug(f"{self.name} overran by {-remaining * 1000:.1f} ms")
                next_due = self.clock.now()
                remaining = 0.0

            if self.clock.wait(remaining, self.stop_event):
                break

        logger.debug(f"{self.name} loop stopped")

    def __repr__(self):
        status = "running" if self.is_running else "stopped"
        return f"<PeriodicTask(name={self.name}, status={status}, ticks={self.tick_count})>"


class SimulationScheduler:
    """
    Owns the simulated PPG chain and its two periodic tasks.

    Responsibilities:
    - Physics tick: generate samples, filter them, push every buffer
    - Algorithm tick: snapshot buffers, run the selected strategy plus
      SpO2 and quality estimation, publish a readout
    - Lifecycle: threaded start/stop, deterministic stepping, reset

    The physics tick is the only writer of buffers and filter state. The
    algorithm tick copies all buffers inside one short critical section and
    computes outside it.
    """

    def __init__(
        self,
        config: Optional[PPGConfig] = None,
        parameters: Optional[SimulationParameters] = None,
        emitter: EmitterConfiguration = EmitterConfiguration.MULTI,
        algorithm: AlgorithmKind = AlgorithmKind.AUTOCORRELATOR,
        seed: Optional[int] = None,
        clock=None,
    ):
        """
        Initialize the scheduler

        Args:
            config: PPG configuration (sampling, cadence, thresholds)
            parameters: Initial simulation parameters
            emitter: Active emitter configuration
            algorithm: Selected firmware variant
            seed: Seed for noise and jitter; None for fresh entropy
            clock: Time source for the threaded tasks
        """
        self.config = config if config else PPGConfig()
        self.parameters = parameters if parameters else SimulationParameters.defaults()
        self.emitter = emitter
        self.algorithm = algorithm
        self.seed = seed
        self.clock = clock if clock else MonotonicClock()

        noise_seed, jitter_seed = np.random.SeedSequence(seed).spawn(2)
        self._jitter_rng = np.random.default_rng(jitter_seed)

        self.generator = SignalGenerator(self.config, emitter, rng=np.random.default_rng(noise_seed))
        self.strategy: AlgorithmStrategy = create_strategy(algorithm, self.config, rng=self._jitter_rng)
        self.spo2_estimator = Spo2Estimator(self.config)
        self.quality = QualityEstimator(self.config)

        self._filters: Dict[str, AnalogFilter] = {}
        self._buffers: Dict[str, RingBuffer] = {}
        self._points: RingBuffer = RingBuffer(self.config.buffer_size)
        self._build_channels()

        # Physics state (generator, filters) vs. buffer contents
        self._physics_lock = threading.RLock()
        self._buffer_lock = threading.Lock()

        self._latest: Optional[SimulationReadout] = None
        self._history = deque(maxlen=self.config.readout_history_size)
        self._listeners: List[Callable[[SimulationReadout], None]] = []

        self.physics_ticks = 0
        self.algorithm_ticks = 0
        self._tasks: List[PeriodicTask] = []

        logger.info(
            f"Simulation scheduler initialized "
            f"(emitter: {emitter.value}, algorithm: {algorithm.value}, seed: {seed})"
        )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def _build_channels(self):
        size = self.config.buffer_size
        self._filters = {ch: AnalogFilter(self.config.sample_rate) for ch in self.emitter.channels}
        self._buffers = {f"raw_{ch}": RingBuffer(size) for ch in CHANNELS}
        self._buffers['filtered'] = RingBuffer(size)
        self._buffers['filtered_red'] = RingBuffer(size)
        self._buffers['filtered_ir'] = RingBuffer(size)
        self._points = RingBuffer(size)

    def update_parameters(self, **changes):
        """
        Replace the parameters with a copy carrying the given changes.

        Raises:
            ValueError: for an unknown parameter name
        """
        known = {f.name for f in fields(SimulationParameters)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown simulation parameter(s): {', '.join(sorted(unknown))}")

        self.parameters = replace(self.parameters, **changes)
        logger.debug(f"Parameters updated: {changes}")

    def set_emitter(self, emitter: EmitterConfiguration):
        """Switch emitter configuration; the channel set changes, so buffers restart."""
        if emitter is self.emitter:
            return
        with self._physics_lock, self._buffer_lock:
            self.emitter = emitter
            self.generator.emitter = emitter
            self._build_channels()
        logger.info(f"Emitter configuration set to {emitter.value}")

    def set_algorithm(self, algorithm: AlgorithmKind):
        """Swap the heart-rate strategy; buffers are kept."""
        if algorithm is self.algorithm:
            return
        self.strategy = create_strategy(algorithm, self.config, rng=self._jitter_rng)
        self.algorithm = algorithm
        logger.info(f"Algorithm set to {algorithm.value}")

    def add_listener(self, listener: Callable[[SimulationReadout], None]):
        """Register a callback invoked with every new readout."""
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    def physics_tick(self):
        """Generate, filter and buffer the samples for one physics period."""
        params = self.parameters

        with self._physics_lock:
            samples = self.generator.generate(params, self.config.points_per_tick)
            cutoff = params.clamped().filter_cutoff_hz
            filtered = {
                ch: self._filters[ch].filter_block([s.value(ch) for s in samples], cutoff)
                for ch in self.emitter.channels
            }
            primary = self.emitter.primary_channel

            with self._buffer_lock:
                for i, sample in enumerate(samples):
                    for ch in self.emitter.channels:
                        self._buffers[f"raw_{ch}"].push(sample.value(ch))
                    self._buffers['filtered'].push(filtered[primary][i])
                    if 'red' in filtered:
                        self._buffers['filtered_red'].push(filtered['red'][i])
                    if 'ir' in filtered:
                        self._buffers['filtered_ir'].push(filtered['ir'][i])

                    self._points.push(self._make_point(sample, filtered[primary][i]))

            self.physics_ticks += 1

    def _make_point(self, sample, filtered_value: float) -> ProcessedPoint:
        dc = float(np.mean(self._buffers['filtered'].to_array()))
        return ProcessedPoint(
            time=sample.timestamp,
            raw=sample.value(self.emitter.primary_channel),
            filtered=float(filtered_value),
            dc=dc,
            ac=float(filtered_value) - dc,
            raw_green=sample.green,
            raw_red=sample.red,
            raw_ir=sample.ir,
        )

    def snapshot(self) -> BufferSnapshot:
        """
        Copy every buffer in one critical section.

        Returns:
            BufferSnapshot consistent across channels
        """
        with self._buffer_lock:
            return self._snapshot_locked()

    def _snapshot_locked(self) -> BufferSnapshot:
        buffers = self._buffers
        return BufferSnapshot.from_sequences(
            self.emitter,
            self.config.sample_period,
            raw=buffers[f"raw_{self.emitter.primary_channel}"].snapshot(),
            filtered=buffers['filtered'].snapshot(),
            raw_green=buffers['raw_green'].snapshot(),
            raw_red=buffers['raw_red'].snapshot(),
            raw_ir=buffers['raw_ir'].snapshot(),
            filtered_red=buffers['filtered_red'].snapshot(),
            filtered_ir=buffers['filtered_ir'].snapshot(),
        )

    def algorithm_tick(self) -> SimulationReadout:
        """
        Run the selected strategy plus SpO2 and quality estimation.

        Returns:
            The readout just published
        """
        with self._buffer_lock:
            snapshot = self._snapshot_locked()
            points = self._points.snapshot()
        timestamp = points[-1].time if points else 0.0

        params = self.parameters
        strategy = self.strategy
        emitter = snapshot.emitter

        result = strategy.evaluate(snapshot, params)
        spo2 = self.spo2_estimator.estimate(snapshot.filtered_red, snapshot.filtered_ir, emitter)
        readout = SimulationReadout(
            algorithm=strategy.kind,
            result=result,
            spo2=spo2,
            snr_db=self.quality.snr_db(params),
            measured_snr_db=self.quality.measured_snr_db(snapshot.raw, snapshot.filtered),
            sample_count=len(snapshot),
            timestamp=timestamp,
        )

        with self._buffer_lock:
            self._latest = readout
            self._history.append(readout)
        self.algorithm_ticks += 1

        logger.debug(f"Algorithm tick: {result}, SpO2 {spo2}, SNR {readout.snr_db:.1f} dB")

        for listener in list(self._listeners):
            try:
                listener(readout)
            except Exception as e:
                logger.error(f"Readout listener failed: {e}", exc_info=True)

        return readout

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return any(task.is_running for task in self._tasks)

    def start(self):
        """Start the physics and algorithm tasks in background threads."""
        if self.is_running:
            logger.warning("Simulation already running")
            return

        self._tasks = [
            PeriodicTask("PPG-Physics-Thread", self.config.physics_interval, self.physics_tick, self.clock),
            PeriodicTask("PPG-Algorithm-Thread", self.config.algorithm_interval, self.algorithm_tick, self.clock),
        ]
        for task in self._tasks:
            task.start()

        logger.info(
            f"✓ Simulation started "
            f"(physics {self.config.physics_interval * 1000:.0f} ms, "
            f"algorithm {self.config.algorithm_interval * 1000:.0f} ms)"
        )

    def stop(self):
        """Stop both tasks; returns once neither thread can write again."""
        if not self.is_running:
            logger.warning("Simulation not running")
            return

        logger.info("Stopping simulation...")
        for task in self._tasks:
            task.stop()
        self._tasks = []
        logger.info(f"✓ Simulation stopped after {self.physics_ticks} physics ticks")

    def run_for(self, seconds: float) -> List[SimulationReadout]:
        """
        Step the simulation deterministically on the calling thread.

        Physics ticks run back to back; an algorithm tick follows every
        algorithm_every physics ticks, preserving the threaded cadence.

        Args:
            seconds: Simulated duration

        Returns:
            Readouts produced during the run

        Raises:
            RuntimeError: if the threaded tasks are running
        """
        if self.is_running:
            raise RuntimeError("Cannot step the simulation while its tasks are running")

        readouts = []
        ticks = int(round(seconds / self.config.physics_interval))
        for _ in range(ticks):
            self.physics_tick()
            if self.physics_ticks % self.config.algorithm_every == 0:
                readouts.append(self.algorithm_tick())
        return readouts

    def reset(self, parameters: Optional[SimulationParameters] = None):
        """
        Stop the tasks and clear buffers, filters, phase and readouts.

        Args:
            parameters: Parameters to install; current ones are kept if None
        """
        if self.is_running:
            self.stop()

        with self._physics_lock, self._buffer_lock:
            for buffer in self._buffers.values():
                buffer.clear()
            self._points.clear()
            for flt in self._filters.values():
                flt.reset()
            self.generator.reset()
            self._latest = None
            self._history.clear()
            self.physics_ticks = 0
            self.algorithm_ticks = 0

        if parameters is not None:
            self.parameters = parameters
        logger.info("Simulation reset")

    # ------------------------------------------------------------------
    # Outputs
    # ------------------------------------------------------------------

    @property
    def latest_readout(self) -> Optional[SimulationReadout]:
        with self._buffer_lock:
            return self._latest

    def readouts(self) -> List[SimulationReadout]:
        """Readout history, oldest first."""
        with self._buffer_lock:
            return list(self._history)

    def processed_points(self) -> List[ProcessedPoint]:
        """Time-ordered charting points."""
        with self._buffer_lock:
            return self._points.snapshot()

    def get_status(self) -> dict:
        """
        Return the current scheduler state.

        Returns:
            Dict with emitter, algorithm, running state, tick counts,
            buffered samples and the latest readout.
        """
        latest = self.latest_readout
        with self._buffer_lock:
            buffered = len(self._buffers['filtered'])
        return {
            'emitter': self.emitter.value,
            'algorithm': self.algorithm.value,
            'is_running': self.is_running,
            'physics_ticks': self.physics_ticks,
            'algorithm_ticks': self.algorithm_ticks,
            'buffered_samples': buffered,
            'latest_readout': latest.as_dict() if latest else None,
        }

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.is_running:
            self.stop()

    def __repr__(self):
        status = "running" if self.is_running else "stopped"
        return f"<SimulationScheduler(status={status}, algorithm={self.algorithm.value})>"
