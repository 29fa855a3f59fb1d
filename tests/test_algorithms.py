import numpy as np
import pytest

from wearable_sim.algorithms import (
    AlgorithmKind,
    AlgorithmStatus,
    Autocorrelator,
    BufferSnapshot,
    ConfidenceEstimator,
    PeakDetector,
    count_falling_crossings,
    create_strategy,
)
from wearable_sim.sensors.ppg import EmitterConfiguration, PPGConfig, SimulationParameters


def _flat_snapshot(n=200, value=1.0):
    return BufferSnapshot.from_sequences(
        EmitterConfiguration.RED_IR, 0.02, raw=[value] * n, filtered=[value] * n,
    )


# ---------------------------------------------------------------------------
# Shared contract
# ---------------------------------------------------------------------------

@pytest.mark.parametrize('kind', list(AlgorithmKind))
def test_short_buffer_reports_scanning(kind, snapshot_factory, clean_params):
    snapshot = snapshot_factory(clean_params, n=49)
    result = create_strategy(kind).evaluate(snapshot, clean_params)

    assert result.status is AlgorithmStatus.SCANNING
    assert result.heart_rate_bpm is None


@pytest.mark.parametrize('kind, cls', [
    (AlgorithmKind.PEAK_DETECTOR, PeakDetector),
    (AlgorithmKind.AUTOCORRELATOR, Autocorrelator),
    (AlgorithmKind.CONFIDENCE, ConfidenceEstimator),
])
def test_create_strategy_dispatches_on_kind(kind, cls):
    strategy = create_strategy(kind)
    assert isinstance(strategy, cls)
    assert strategy.kind is kind


def test_create_strategy_rejects_unknown_kind():
    with pytest.raises(ValueError):
        create_strategy('basic_algo')


# ---------------------------------------------------------------------------
# Peak detector
# ---------------------------------------------------------------------------

def test_count_falling_crossings():
    assert count_falling_crossings(np.array([1.0, -1.0, 1.0, -1.0])) == 2
    assert count_falling_crossings(np.array([0.0, -0.5, -0.2, 0.3])) == 1
    assert count_falling_crossings(np.array([1.0])) == 0


def test_peak_detector_locks_on_clean_signal(snapshot_factory, clean_params):
    # 200 samples at 50 Hz = 4 s, five beats at 75 BPM
    result = PeakDetector().evaluate(snapshot_factory(clean_params), clean_params)

    assert result.status is AlgorithmStatus.LOCKED
    assert result.heart_rate_bpm == 75


@pytest.mark.parametrize('motion, noise', [(0.16, 0.0), (0.0, 0.21), (1.0, 1.0), (0.5, 0.1)])
def test_peak_detector_gates_on_artifacts(motion, noise, snapshot_factory, clean_params):
    params = SimulationParameters(motion_artifact_level=motion, noise_level=noise)

    # Gating ignores the data: a clean snapshot is rejected too
    for snapshot in (snapshot_factory(clean_params), snapshot_factory(params), _flat_snapshot()):
        result = PeakDetector().evaluate(snapshot, params)
        assert result.status is AlgorithmStatus.NOISE_ERROR
        assert result.heart_rate_bpm is None


def test_peak_detector_scans_on_flat_signal(clean_params):
    result = PeakDetector().evaluate(_flat_snapshot(), clean_params)
    assert result.status is AlgorithmStatus.SCANNING


# ---------------------------------------------------------------------------
# Autocorrelator
# ---------------------------------------------------------------------------

@pytest.mark.parametrize('heart_rate', [40, 45, 60, 75, 80, 90, 100, 110, 120, 140, 150, 160, 180])
def test_autocorrelator_tracks_clean_signal(heart_rate, snapshot_factory):
    params = SimulationParameters.silent(heart_rate)
    result = Autocorrelator().evaluate(snapshot_factory(params), params)

    assert result.status is AlgorithmStatus.TRACKED
    assert abs(result.heart_rate_bpm - heart_rate) <= 2


def test_autocorrelator_lag_window(config):
    assert Autocorrelator(config).lag_range(config.sample_period) == (15, 75)


@pytest.mark.parametrize('n', [50, 77, 120, 200])
@pytest.mark.parametrize('seed', range(5))
def test_best_lag_stays_in_window(n, seed):
    rng = np.random.default_rng(seed)
    signal = rng.normal(size=n)
    strategy = Autocorrelator()
    lag_min, lag_max = strategy.lag_range(0.02)

    lag, _ = strategy.best_lag(signal, 0.02)
    assert lag_min <= lag <= lag_max

    snapshot = BufferSnapshot.from_sequences(
        EmitterConfiguration.RED_IR, 0.02, raw=signal, filtered=signal,
    )
    result = strategy.evaluate(snapshot, SimulationParameters())
    if result.has_estimate:
        assert 40 <= result.heart_rate_bpm <= 200


def test_best_lag_first_seen_wins_ties():
    # Alternating +/-1: every even lag correlates exactly 1.0
    signal = np.tile([1.0, -1.0], 100)
    lag, corr = Autocorrelator().best_lag(signal, 0.02)

    assert lag == 16
    assert corr == pytest.approx(1.0)


def test_pick_peak_prefers_fundamental_over_harmonic():
    # Fundamental at index 2, slightly stronger second harmonic at index 6
    corrs = np.array([0.1, 0.6, 0.93, 0.5, -0.2, 0.6, 0.95, 0.4])
    assert Autocorrelator().pick_peak(corrs) == 2


def test_pick_peak_skips_weak_local_maxima():
    corrs = np.array([0.2, 0.5, 0.3, 0.7, 0.98, 0.6])
    assert Autocorrelator().pick_peak(corrs) == 4


def test_pick_peak_empty_correlogram():
    assert Autocorrelator().pick_peak(np.array([])) is None


def test_refine_lag_interpolates_between_samples():
    lags = np.array([36, 37, 38, 39])
    corrs = np.array([0.5, 0.9, 0.9, 0.5])

    assert Autocorrelator.refine_lag(lags, corrs, 1) == pytest.approx(37.5)
    # Edge peaks are not refined
    assert Autocorrelator.refine_lag(lags, corrs, 0) == 36.0


def test_autocorrelator_rejects_below_threshold(snapshot_factory, clean_params):
    strict = Autocorrelator(PPGConfig(autocorrelation_threshold=5.0))
    result = strict.evaluate(snapshot_factory(clean_params), clean_params)

    assert result.status is AlgorithmStatus.WEAK_SIGNAL
    assert result.heart_rate_bpm is None


def test_autocorrelator_flat_signal_is_weak(clean_params):
    result = Autocorrelator().evaluate(_flat_snapshot(), clean_params)
    assert result.status is AlgorithmStatus.WEAK_SIGNAL


# ---------------------------------------------------------------------------
# Confidence estimator
# ---------------------------------------------------------------------------

def test_confidence_infers_near_target(snapshot_factory, clean_params):
    estimator = ConfidenceEstimator(rng=np.random.default_rng(0))
    snapshot = snapshot_factory(clean_params)

    for _ in range(50):
        result = estimator.evaluate(snapshot, clean_params)
        assert result.status is AlgorithmStatus.INFERRING
        assert abs(result.heart_rate_bpm - 75) <= 2


def test_confidence_jitter_is_seeded(snapshot_factory, clean_params):
    snapshot = snapshot_factory(clean_params)
    a = ConfidenceEstimator(rng=np.random.default_rng(9))
    b = ConfidenceEstimator(rng=np.random.default_rng(9))

    assert [a.evaluate(snapshot, clean_params) for _ in range(10)] == \
        [b.evaluate(snapshot, clean_params) for _ in range(10)]


@pytest.mark.parametrize('motion, noise, status', [
    (0.2, 0.2, AlgorithmStatus.INFERRING),
    (0.25, 0.25, AlgorithmStatus.LOST),
    (1.0, 1.0, AlgorithmStatus.LOST),
])
def test_confidence_gates_on_snr(motion, noise, status, snapshot_factory, clean_params):
    params = SimulationParameters(motion_artifact_level=motion, noise_level=noise)
    result = ConfidenceEstimator().evaluate(snapshot_factory(clean_params), params)

    assert result.status is status


# ---------------------------------------------------------------------------
# Saturation scenario
# ---------------------------------------------------------------------------

@pytest.mark.parametrize('seed', range(3))
def test_saturated_signal(seed, snapshot_factory, saturated_params):
    for emitter in EmitterConfiguration:
        snapshot = snapshot_factory(saturated_params, emitter=emitter, seed=seed)

        assert PeakDetector().evaluate(snapshot, saturated_params).status is AlgorithmStatus.NOISE_ERROR
        assert ConfidenceEstimator().evaluate(snapshot, saturated_params).status is AlgorithmStatus.LOST

        result = Autocorrelator().evaluate(snapshot, saturated_params)
        assert result.status in (AlgorithmStatus.WEAK_SIGNAL, AlgorithmStatus.TRACKED)
        if result.has_estimate:
            assert 40 <= result.heart_rate_bpm <= 200
