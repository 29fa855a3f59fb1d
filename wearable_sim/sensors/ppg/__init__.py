"""
Simulated PPG Front End for the wearable simulator
Optical pulse-oximetry signal chain

Architecture:
- Generator: Synthetic green/red/IR samples from simulation parameters
- Buffer: Fixed-capacity per-channel sample history
- Filter: Single-pole low-pass approximating the analog front end
- Processor: SpO2 (ratio of ratios) and signal quality estimation

Emitter configurations:
- Green only: Heart rate only, no SpO2
- Red + IR: Heart rate from IR, SpO2 from red/IR
- Multi-wavelength: Heart rate from green, SpO2 from red/IR
"""

from .buffer import RingBuffer
from .config import EmitterConfiguration, PPGConfig, SimulationParameters
from .filter import AnalogFilter
from .generator import ChannelSample, SignalGenerator, pulse_shape
from .processor import QualityEstimator, Spo2Estimator, Spo2Result, ac_dc

__all__ = [
    'RingBuffer',
    'EmitterConfiguration',
    'PPGConfig',
    'SimulationParameters',
    'AnalogFilter',
    'ChannelSample',
    'SignalGenerator',
    'pulse_shape',
    'QualityEstimator',
    'Spo2Estimator',
    'Spo2Result',
    'ac_dc',
]

__version__ = '1.0.0'
