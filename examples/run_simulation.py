#!/usr/bin/env python3
"""Example script to run the closed-loop highway planner simulation.

This script demonstrates how to use the highway simulator.
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger
from highway_planner.config import load_config
from highway_planner.simulation import HighwaySimulator


def main():
    """Main function."""
    parser = argparse.ArgumentParser(
        description='Run highway planner simulation'
    )
    parser.add_argument(
        '--scenario',
        type=str,
        default='scenarios/highway_traffic.yaml',
        help='Path to scenario configuration file'
    )
    parser.add_argument(
        '--steps',
        type=int,
        default=None,
        help='Number of planning cycles (overrides config)'
    )
    parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='Output directory (overrides config)'
    )
    parser.add_argument(
        '--log-level',
        type=str,
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level'
    )
    parser.add_argument(
        '--no-viz',
        action='store_true',
        help='Skip dashboard rendering'
    )

    args = parser.parse_args()

    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level=args.log_level
    )
    logging.getLogger().setLevel(logging.WARNING)
    for lib in ['matplotlib', 'PIL']:
        logging.getLogger(lib).setLevel(logging.WARNING)

    # Load configuration
    logger.info(f"Loading scenario from {args.scenario}")
    config = load_config(args.scenario)

    if args.output is not None:
        config.output_path = args.output
    if args.no_viz:
        config.visualization_enabled = False

    logger.info("Creating highway simulator")
    simulator = HighwaySimulator(config)

    logger.info("Starting simulation")
    results = simulator.run(n_steps=args.steps)

    logger.info("Saving results")
    metrics = simulator.save_results()

    # Print summary
    logger.info("=" * 60)
    logger.info("SIMULATION SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Total cycles: {len(results)}")
    logger.info(f"Total time: {results[-1].time:.2f}s")
    logger.info(f"Final ego s: {simulator.ego_state.s:.1f}m, lane {results[-1].lane}")
    logger.info(f"Mean speed: {metrics['mean_speed']:.2f} m/s")
    logger.info(f"Lane changes: {metrics['lane_changes']}")
    logger.info(f"Max planning time: {metrics['max_planning_time'] * 1000:.2f} ms")

    if metrics['collision_count'] > 0:
        logger.error("COLLISION OCCURRED!")
    else:
        logger.success("No collisions")

    logger.info("=" * 60)
    logger.success("Simulation complete!")


if __name__ == '__main__':
    main()
