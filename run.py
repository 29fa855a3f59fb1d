"""
Wearable Simulator - Main Entry Point
Runs the simulated PPG chain:
  1. Build the pipeline from stage selections
  2. Apply simulation parameters
  3. Run physics + algorithm ticks (stepped, or real-time threads)
  4. Print each algorithm readout
  5. Optionally export the trace to CSV

Usage:
    python run.py                                   # 10 s, defaults
    python run.py --emitter red_ir --algorithm dsp_algo --duration 20
    python run.py --noise 0.4 --motion 0.3 --algorithm basic_algo
    python run.py --realtime --duration 5 --export-dir exports
"""

import argparse
import logging
import signal
import sys
import time

from wearable_sim.algorithms import AlgorithmKind
from wearable_sim.export import export_run
from wearable_sim.pipeline import SimulationPipeline
from wearable_sim.sensors.ppg import EmitterConfiguration, SimulationParameters

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
)
logger = logging.getLogger('wearable_sim')


def print_readout(readout):
    """One status line per algorithm tick."""
    hr = readout.result.heart_rate_bpm if readout.result.has_estimate else '--'
    print(
        f"[{readout.timestamp:6.2f}s] "
        f"{readout.result.status.value:<11} "
        f"HR {hr!s:>4} BPM  "
        f"SpO2 {readout.spo2!s:>4}  "
        f"SNR {readout.snr_db:5.1f} dB (measured {readout.measured_snr_db:5.1f} dB)"
    )


def parse_args(argv=None):
    defaults = SimulationParameters.defaults()
    parser = argparse.ArgumentParser(description='Wearable PPG simulation')
    parser.add_argument('--duration', type=float, default=10.0,
                        help='Simulated seconds to run (default: 10)')
    parser.add_argument('--emitter', default=EmitterConfiguration.MULTI.value,
                        choices=[e.value for e in EmitterConfiguration])
    parser.add_argument('--algorithm', default=AlgorithmKind.AUTOCORRELATOR.value,
                        choices=[k.value for k in AlgorithmKind])
    parser.add_argument('--heart-rate', type=int, default=defaults.heart_rate_bpm)
    parser.add_argument('--spo2', type=int, default=defaults.spo2_target)
    parser.add_argument('--motion', type=float, default=defaults.motion_artifact_level)
    parser.add_argument('--noise', type=float, default=defaults.noise_level)
    parser.add_argument('--cutoff', type=float, default=defaults.filter_cutoff_hz)
    parser.add_argument('--respiration', type=float, default=defaults.respiration_level)
    parser.add_argument('--seed', type=int, default=None,
                        help='Seed for reproducible noise and jitter')
    parser.add_argument('--realtime', action='store_true',
                        help='Run threaded ticks against the wall clock')
    parser.add_argument('--export-dir', default=None,
                        help='Write processed points and readouts as CSV here')
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    parameters = SimulationParameters(
        heart_rate_bpm=args.heart_rate,
        spo2_target=args.spo2,
        motion_artifact_level=args.motion,
        noise_level=args.noise,
        filter_cutoff_hz=args.cutoff,
        respiration_level=args.respiration,
    )
    pipeline = SimulationPipeline(
        selections={'emitters': args.emitter, 'software': args.algorithm},
        parameters=parameters,
        seed=args.seed,
    )
    pipeline.scheduler.add_listener(print_readout)

    def shutdown(signum, frame):
        logger.info("Shutdown signal received, stopping simulation...")
        if pipeline.scheduler.is_running:
            pipeline.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    if args.realtime:
        pipeline.start()
        time.sleep(args.duration)
        pipeline.stop()
    else:
        pipeline.run_for(args.duration)

    if args.export_dir:
        run_dir = export_run(args.export_dir, pipeline.scheduler)
        logger.info(f"✓ Trace exported to {run_dir}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
