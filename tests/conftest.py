"""
Shared fixtures for the wearable simulator tests
"""

import numpy as np
import pytest

from wearable_sim.algorithms import BufferSnapshot
from wearable_sim.sensors.ppg import (
    AnalogFilter,
    EmitterConfiguration,
    PPGConfig,
    SignalGenerator,
    SimulationParameters,
)


def simulate_snapshot(
    params: SimulationParameters,
    emitter: EmitterConfiguration = EmitterConfiguration.RED_IR,
    n: int = 200,
    seed: int = 0,
    config: PPGConfig = None,
) -> BufferSnapshot:
    """Generate and filter n samples the way the physics tick does."""
    config = config if config else PPGConfig()
    generator = SignalGenerator(config, emitter, rng=np.random.default_rng(seed))
    samples = generator.generate(params, n)
    cutoff = params.clamped().filter_cutoff_hz

    raw = {ch: [s.value(ch) for s in samples] for ch in emitter.channels}
    filtered = {
        ch: AnalogFilter(config.sample_rate).filter_block(raw[ch], cutoff)
        for ch in emitter.channels
    }

    primary = emitter.primary_channel
    channels = {'raw': raw[primary], 'filtered': filtered[primary]}
    for ch in emitter.channels:
        channels[f"raw_{ch}"] = raw[ch]
    for ch in ('red', 'ir'):
        if ch in filtered:
            channels[f"filtered_{ch}"] = filtered[ch]

    return BufferSnapshot.from_sequences(emitter, config.sample_period, **channels)


@pytest.fixture
def config():
    return PPGConfig()


@pytest.fixture
def clean_params():
    return SimulationParameters.silent(heart_rate_bpm=75)


@pytest.fixture
def saturated_params():
    return SimulationParameters(
        heart_rate_bpm=75,
        motion_artifact_level=1.0,
        noise_level=1.0,
    )


@pytest.fixture
def snapshot_factory():
    return simulate_snapshot
