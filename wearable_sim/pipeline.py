"""
Wearable Simulator - Simulation Pipeline
=========================================
Central module that maps hardware stage selections onto the simulated PPG
chain and owns its lifecycle.

Usage in run.py:
    pipeline = SimulationPipeline(selections={'emitters': 'red_ir', 'software': 'dsp_algo'})
    pipeline.start()
    # ... display layer polls pipeline.latest_readout ...
    pipeline.stop()

Stages consumed:
    - emitters : Optical emitter option -> EmitterConfiguration
    - software : Firmware option        -> AlgorithmKind

All other stages (display, drive, detectors, afe, mcu, battery) are
recorded for get_status() but do not affect the simulation.
"""

import logging
from dataclasses import asdict
from typing import Dict, Optional

from .algorithms import AlgorithmKind
from .coordinator import SimulationScheduler
from .sensors.ppg import EmitterConfiguration, PPGConfig, SimulationParameters

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Stage ids and their default options
# ---------------------------------------------------------------------------
STAGE_EMITTERS = 'emitters'
STAGE_SOFTWARE = 'software'

DEFAULT_SELECTIONS = {
    'display': 'oled_mono',
    STAGE_EMITTERS: EmitterConfiguration.GREEN_ONLY.value,
    'drive': 'continuous',
    'detectors': 'single_pd',
    'afe': 'discrete',
    'mcu': 'basic',
    STAGE_SOFTWARE: AlgorithmKind.PEAK_DETECTOR.value,
    'battery': 'lipo_small',
}


def parse_emitter(option_id: str) -> EmitterConfiguration:
    """Map an emitter option id to its configuration; ValueError if unknown."""
    try:
        return EmitterConfiguration(option_id)
    except ValueError:
        valid = ', '.join(e.value for e in EmitterConfiguration)
        raise ValueError(f"Unknown emitter option '{option_id}' (expected one of: {valid})") from None


def parse_algorithm(option_id: str) -> AlgorithmKind:
    """Map a software option id to its algorithm; ValueError if unknown."""
    try:
        return AlgorithmKind(option_id)
    except ValueError:
        valid = ', '.join(k.value for k in AlgorithmKind)
        raise ValueError(f"Unknown software option '{option_id}' (expected one of: {valid})") from None


class SimulationPipeline:
    """
    Owns the simulation for the configuration layer.

    Responsibilities:
      - Translate stage option ids into emitter and algorithm selections
      - Forward parameter edits to the scheduler
      - Provide a clean start() / stop() / reset() interface
      - Report selections and the latest readout via get_status()
    """

    def __init__(
        self,
        selections: Optional[Dict[str, str]] = None,
        parameters: Optional[SimulationParameters] = None,
        config: Optional[PPGConfig] = None,
        seed: Optional[int] = None,
        clock=None,
    ):
        """
        Args:
            selections : Option id per stage; missing stages use defaults
            parameters : Initial simulation parameters
            config     : PPG configuration
            seed       : Seed for reproducible noise and jitter
            clock      : Time source for the threaded ticks
        """
        self.selections = dict(DEFAULT_SELECTIONS)
        self.selections.update(selections or {})

        emitter = parse_emitter(self.selections[STAGE_EMITTERS])
        algorithm = parse_algorithm(self.selections[STAGE_SOFTWARE])

        self.scheduler = SimulationScheduler(
            config=config,
            parameters=parameters,
            emitter=emitter,
            algorithm=algorithm,
            seed=seed,
            clock=clock,
        )

        logger.info(
            f"SimulationPipeline created "
            f"(emitters: {emitter.value}, software: {algorithm.value})"
        )

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    def start(self):
        """Start the physics and algorithm ticks."""
        self.scheduler.start()

    def stop(self):
        """Stop both ticks."""
        self.scheduler.stop()

    def reset(self):
        """
        Restore default parameters and stage selections and clear all
        buffered state.
        """
        self.selections = dict(DEFAULT_SELECTIONS)
        self.scheduler.reset(parameters=SimulationParameters.defaults())
        self.scheduler.set_emitter(parse_emitter(self.selections[STAGE_EMITTERS]))
        self.scheduler.set_algorithm(parse_algorithm(self.selections[STAGE_SOFTWARE]))
        logger.info("Pipeline reset to defaults")

    def select(self, stage: str, option_id: str):
        """
        Apply a stage selection.

        Args:
            stage     : Stage id, e.g. 'emitters' or 'software'
            option_id : Option id within that stage
        """
        if stage == STAGE_EMITTERS:
            self.scheduler.set_emitter(parse_emitter(option_id))
        elif stage == STAGE_SOFTWARE:
            self.scheduler.set_algorithm(parse_algorithm(option_id))
        elif stage not in DEFAULT_SELECTIONS:
            raise ValueError(f"Unknown stage: {stage}")
        else:
            logger.debug(f"Stage '{stage}' does not affect the simulation")

        self.selections[stage] = option_id

    def update_parameters(self, **changes):
        """Forward a parameter edit to the scheduler."""
        self.scheduler.update_parameters(**changes)

    def run_for(self, seconds: float):
        """Step the simulation deterministically; returns the readouts."""
        return self.scheduler.run_for(seconds)

    @property
    def latest_readout(self):
        return self.scheduler.latest_readout

    def processed_points(self):
        return self.scheduler.processed_points()

    def get_status(self) -> dict:
        """
        Return a summary of selections and simulation state.
        """
        return {
            'selections': dict(self.selections),
            'parameters': asdict(self.scheduler.parameters),
            'simulation': self.scheduler.get_status(),
        }

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.scheduler.is_running:
            self.stop()

    def __repr__(self):
        return (
            f"<SimulationPipeline(emitters={self.selections[STAGE_EMITTERS]}, "
            f"software={self.selections[STAGE_SOFTWARE]})>"
        )
