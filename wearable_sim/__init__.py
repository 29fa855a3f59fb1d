"""
Wearable Simulator
Real-time simulation of a wearable's optical pulse-oximetry chain

Components:
- Sensors: Synthetic PPG generation, buffering, analog filtering, SpO2
- Algorithms: Peak detection, autocorrelation and confidence estimation
- Coordinator: Physics and algorithm ticks with an injectable clock
- Pipeline: Hardware stage selections mapped onto the simulation
"""

from .algorithms import AlgorithmKind, AlgorithmResult, AlgorithmStatus
from .coordinator import SimulationReadout, SimulationScheduler
from .pipeline import SimulationPipeline
from .sensors.ppg import EmitterConfiguration, PPGConfig, SimulationParameters

__all__ = [
    'AlgorithmKind',
    'AlgorithmResult',
    'AlgorithmStatus',
    'EmitterConfiguration',
    'PPGConfig',
    'SimulationParameters',
    'SimulationPipeline',
    'SimulationReadout',
    'SimulationScheduler',
]

__version__ = '1.0.0'
