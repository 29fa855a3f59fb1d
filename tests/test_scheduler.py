import logging
import threading
import time

import pytest

from wearable_sim.algorithms import AlgorithmKind, AlgorithmStatus
from wearable_sim.coordinator import ManualClock, MonotonicClock, PeriodicTask, SimulationScheduler
from wearable_sim.sensors.ppg import EmitterConfiguration, PPGConfig, SimulationParameters


def wait_until(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


@pytest.fixture
def scheduler():
    sched = SimulationScheduler(
        parameters=SimulationParameters.silent(75),
        emitter=EmitterConfiguration.RED_IR,
        algorithm=AlgorithmKind.AUTOCORRELATOR,
        seed=1,
    )
    yield sched
    if sched.is_running:
        sched.stop()


# ---------------------------------------------------------------------------
# Stepped mode
# ---------------------------------------------------------------------------

def test_stepped_cadence_ratio(scheduler):
    readouts = scheduler.run_for(5.0)

    assert scheduler.physics_ticks == 250
    assert scheduler.algorithm_ticks == 10
    assert len(readouts) == 10
    assert scheduler.readouts() == readouts


def test_buffers_stay_bounded(scheduler):
    scheduler.run_for(10.0)
    points = scheduler.processed_points()

    assert len(points) == scheduler.config.buffer_size
    assert scheduler.get_status()['buffered_samples'] == scheduler.config.buffer_size
    assert [p.time for p in points] == sorted(p.time for p in points)


def test_early_readout_is_scanning(scheduler):
    # First algorithm tick sees 25 samples
    readout = scheduler.run_for(0.5)[0]

    assert readout.sample_count == 25
    assert readout.result.status is AlgorithmStatus.SCANNING
    assert readout.result.heart_rate_bpm is None
    assert not readout.spo2.available


@pytest.mark.parametrize('heart_rate', [40, 75, 80, 90, 120, 150, 180])
@pytest.mark.parametrize('emitter', [EmitterConfiguration.RED_IR, EmitterConfiguration.MULTI])
def test_round_trip_converges(emitter, heart_rate):
    params = SimulationParameters(
        heart_rate_bpm=heart_rate, spo2_target=98, motion_artifact_level=0.0, noise_level=0.0,
    )
    sched = SimulationScheduler(parameters=params, emitter=emitter,
                                algorithm=AlgorithmKind.AUTOCORRELATOR, seed=7)
    readout = sched.run_for(8.0)[-1]

    assert readout.result.status is AlgorithmStatus.TRACKED
    assert abs(readout.result.heart_rate_bpm - heart_rate) <= 2
    assert 97 <= readout.spo2.percentage <= 99


def test_green_only_has_no_spo2():
    sched = SimulationScheduler(parameters=SimulationParameters.silent(75),
                                emitter=EmitterConfiguration.GREEN_ONLY, seed=2)
    readout = sched.run_for(5.0)[-1]

    assert not readout.spo2.available
    assert readout.result.status is AlgorithmStatus.TRACKED


def test_same_seed_same_run():
    params = SimulationParameters(noise_level=0.1, motion_artifact_level=0.05)
    runs = []
    for _ in range(2):
        sched = SimulationScheduler(parameters=params, algorithm=AlgorithmKind.CONFIDENCE, seed=123)
        readouts = sched.run_for(4.0)
        runs.append((sched.processed_points(), readouts))

    assert runs[0] == runs[1]


@pytest.mark.parametrize('kind, allowed', [
    (AlgorithmKind.PEAK_DETECTOR, {AlgorithmStatus.NOISE_ERROR}),
    (AlgorithmKind.CONFIDENCE, {AlgorithmStatus.LOST}),
    (AlgorithmKind.AUTOCORRELATOR, {AlgorithmStatus.WEAK_SIGNAL, AlgorithmStatus.TRACKED}),
])
def test_saturation_scenario(kind, allowed, saturated_params):
    sched = SimulationScheduler(parameters=saturated_params, algorithm=kind, seed=5)
    readouts = sched.run_for(6.0)

    # Skip the readouts taken before min_samples were buffered
    for readout in readouts[2:]:
        assert readout.result.status in allowed
        assert readout.snr_db == 0.0


# ---------------------------------------------------------------------------
# Configuration changes
# ---------------------------------------------------------------------------

def test_update_parameters_replaces_object(scheduler):
    before = scheduler.parameters
    scheduler.update_parameters(heart_rate_bpm=90, noise_level=0.3)

    assert scheduler.parameters.heart_rate_bpm == 90
    assert scheduler.parameters.noise_level == 0.3
    assert before.heart_rate_bpm == 75


def test_update_parameters_rejects_unknown_name(scheduler):
    with pytest.raises(ValueError):
        scheduler.update_parameters(heartRate=90)


def test_set_emitter_restarts_buffers(scheduler):
    scheduler.run_for(2.0)
    scheduler.set_emitter(EmitterConfiguration.GREEN_ONLY)

    assert scheduler.get_status()['buffered_samples'] == 0
    assert scheduler.processed_points() == []

    scheduler.run_for(1.0)
    point = scheduler.processed_points()[-1]
    assert point.raw_green is not None
    assert point.raw_ir is None


def test_set_algorithm_switches_readouts(scheduler):
    scheduler.run_for(2.0)
    scheduler.set_algorithm(AlgorithmKind.PEAK_DETECTOR)
    readout = scheduler.run_for(0.5)[-1]

    assert readout.algorithm is AlgorithmKind.PEAK_DETECTOR
    assert readout.result.status is AlgorithmStatus.LOCKED


def test_reset_clears_state(scheduler):
    scheduler.run_for(3.0)
    scheduler.reset(parameters=SimulationParameters.defaults())

    assert scheduler.physics_ticks == 0
    assert scheduler.processed_points() == []
    assert scheduler.latest_readout is None
    assert scheduler.readouts() == []
    assert scheduler.generator.time == 0.0
    assert scheduler.parameters == SimulationParameters.defaults()


def test_listeners_receive_readouts(scheduler, caplog):
    received = []

    def broken(readout):
        raise RuntimeError("display unavailable")

    scheduler.add_listener(broken)
    scheduler.add_listener(received.append)

    with caplog.at_level(logging.ERROR):
        readouts = scheduler.run_for(1.0)

    assert received == readouts
    assert "display unavailable" in caplog.text


# ---------------------------------------------------------------------------
# Threaded mode
# ---------------------------------------------------------------------------

def test_threaded_run_and_clean_stop():
    sched = SimulationScheduler(config=PPGConfig.for_testing(), parameters=SimulationParameters.silent(75), seed=3)
    sched.start()
    assert sched.is_running
    assert wait_until(lambda: sched.algorithm_ticks >= 2)
    sched.stop()

    assert not sched.is_running
    ticks = sched.physics_ticks
    points = sched.processed_points()
    time.sleep(0.05)

    assert ticks > 0
    assert sched.physics_ticks == ticks
    assert sched.processed_points() == points
    assert not any(t.name.startswith('PPG-') for t in threading.enumerate())


def test_double_start_and_idle_stop_warn(caplog):
    sched = SimulationScheduler(config=PPGConfig.for_testing(), seed=4)
    with caplog.at_level(logging.WARNING):
        sched.stop()
        sched.start()
        sched.start()
        sched.stop()

    assert "not running" in caplog.text
    assert "already running" in caplog.text


def test_run_for_refused_while_threads_run():
    with SimulationScheduler(config=PPGConfig.for_testing(), seed=6) as sched:
        sched.start()
        with pytest.raises(RuntimeError):
            sched.run_for(1.0)
    assert not sched.is_running


def test_periodic_task_follows_manual_clock():
    clock = ManualClock()
    calls = []
    task = PeriodicTask("test-task", 1.0, lambda: calls.append(clock.now()), clock)

    task.start()
    assert wait_until(lambda: len(calls) == 1)

    clock.advance(0.5)
    time.sleep(0.05)
    assert len(calls) == 1

    clock.advance(0.5)
    assert wait_until(lambda: len(calls) == 2)

    task.stop()
    assert not task.is_running
    assert calls == [0.0, 1.0]


def test_periodic_task_survives_callback_errors(caplog):
    def failing():
        raise ValueError("tick failed")

    task = PeriodicTask("failing-task", 0.005, failing, MonotonicClock())
    with caplog.at_level(logging.ERROR):
        task.start()
        assert wait_until(lambda: task.tick_count >= 3)
        task.stop()

    assert "tick failed" in caplog.text
