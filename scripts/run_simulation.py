"""
run_simulation.py
──────────────────────────────────────────────────────────────────────────────
Quick-run script for the fleet allocation simulation.

Usage:
    python scripts/run_simulation.py                              # defaults from config
    python scripts/run_simulation.py --n-robots 5 --hours 2
    python scripts/run_simulation.py --config config/default_allocator.yaml -v

Outputs summary KPIs to stdout.
"""

import argparse
import dataclasses
import logging
from pathlib import Path

from src.fleet.config import AllocatorConfig, load_config
from src.simulation.engine import FleetSimulation


def main():
    """Main"""

    parser = argparse.ArgumentParser(description="Run fleet task allocation simulation")
    parser.add_argument(
        "--config",
        type=str,
        default="config/default_allocator.yaml",
        help="Path to allocator config YAML",
    )
    parser.add_argument("--n-robots", type=int, default=None, help="Number of robots to deploy")
    parser.add_argument(
        "--hours", type=float, default=None, help="Simulation duration in hours (overrides config)"
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed (overrides config)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every allocation")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    # Load config
    config_path = Path(args.config)
    if config_path.exists():
        config = load_config(config_path)
        print(f"Loaded config from {config_path}")
    else:
        print(f"Config {config_path} not found, using defaults")
        config = AllocatorConfig()

    # Apply CLI overrides
    if args.hours is not None or args.seed is not None:
        sim = dataclasses.replace(
            config.simulation,
            duration_hours=args.hours or config.simulation.duration_hours,
            random_seed=args.seed if args.seed is not None else config.simulation.random_seed,
        )
        config = dataclasses.replace(config, simulation=sim)

    # Run
    engine = FleetSimulation(config, n_robots=args.n_robots)
    results = engine.run()

    print("\nSimulation complete:")
    print(f"  Requests:          {results.total_requests}")
    print(f"  Assignments:       {results.total_assignments}")
    print(f"  No task available: {results.no_task_responses}")
    print(f"  Door observations: {results.observations_recorded}")
    print(f"  Expired skips:     {results.expired_skips}")
    print(f"  Tasks left:        {results.final_pool_size}")
    for kind, count in sorted(results.assignments_by_kind.items()):
        print(f"    {kind:<9} {count:>5}")

    print(f"\n{'=' * 60}")
    print("Robot Fleet Summary:")
    print(f"{'=' * 60}")
    print(f"{'Robot ID':<10} {'Tasks':>6} {'Dist(m)':>8} {'Charges':>8} {'Battery':>8}")
    print(f"{'-' * 10} {'-' * 6} {'-' * 8} {'-' * 8} {'-' * 8}")
    for robot_id, summary in sorted(results.robot_summaries.items()):
        print(
            f"{robot_id:<10} {summary['tasks_completed']:>6} "
            f"{summary['total_distance_m']:>8.0f} {summary['charging_visits']:>8} "
            f"{summary['final_battery_pct']:>7.1f}%"
        )


if __name__ == "__main__":
    main()
