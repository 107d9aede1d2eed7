#!/usr/bin/env python3
"""
Run a closed-loop gunnery engagement.

Usage:
    python scripts/run_engagement.py --scenario crossing
    python scripts/run_engagement.py --scenario weaving --ticks 3600 --seed 3 --verbose
    python scripts/run_engagement.py --config configs/fighter.json --scenario distant
"""

import argparse
import logging
import sys
from pathlib import Path

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from gunnery.config import FireControlConfig, load_config
from gunnery.simulation import SCENARIOS, create_scenario


def main():
    parser = argparse.ArgumentParser(
        description="Run a closed-loop gunnery engagement",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python scripts/run_engagement.py --scenario stationary
    python scripts/run_engagement.py --scenario radio --ticks 1800
    python scripts/run_engagement.py --scenario weaving --verbose
        """,
    )

    parser.add_argument(
        "--scenario",
        choices=sorted(SCENARIOS),
        default="crossing",
        help="Engagement to run (default: crossing)",
    )
    parser.add_argument(
        "--ticks",
        type=int,
        default=1800,
        help="Maximum ticks to simulate (default: 1800)",
    )
    parser.add_argument(
        "--hits",
        type=int,
        default=None,
        help="Stop after this many hits",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Radar noise seed (default: 0)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON fire-control configuration file",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(name)s %(levelname)s: %(message)s",
    )

    config = load_config(args.config) if args.config else FireControlConfig()
    sim = create_scenario(args.scenario, config=config, seed=args.seed)
    result = sim.run(args.ticks, stop_after_hits=args.hits)

    print("=" * 60)
    print(f"ENGAGEMENT: {args.scenario.upper()}")
    print("=" * 60)
    print(f"Ticks simulated:   {result.ticks} ({result.ticks * config.tick_length:.1f} s)")
    if result.first_lock_tick is None:
        print("First lock:        never")
    else:
        print(f"First lock:        tick {result.first_lock_tick}")
    print(f"Ticks skipped:     {result.skipped_ticks}")
    print(f"Shots fired:       {result.shots_fired}")
    print(f"Hits:              {result.hits} ({result.hit_rate * 100:.1f}%)")
    print(f"Closest round:     {result.closest_approach:.1f} m")
    print(f"Closest approach:  {result.minimum_separation():.1f} m")


if __name__ == "__main__":
    main()
