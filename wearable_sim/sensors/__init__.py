"""
Wearable Simulator Sensors
Simulated biosensor front ends

Available Sensors:
- PPG: Green / red / infrared photoplethysmography (50 Hz)

All sensors support:
- Seeded, reproducible signal generation
- Fixed-capacity buffering with snapshot reads
- Quality assessment alongside the primary measurement
"""

from .ppg import (
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

__all__ = [
    # PPG (heart rate + SpO2)
    'AnalogFilter',
    'EmitterConfiguration',
    'PPGConfig',
    'QualityEstimator',
    'RingBuffer',
    'SignalGenerator',
    'SimulationParameters',
    'Spo2Estimator',
    'Spo2Result',
]

__version__ = '1.0.0'
