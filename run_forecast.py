#!/usr/bin/env python3
"""
BIG/SMALL Forecaster - Single Forecast
======================================

Forecasts the next round from a JSON history file:
    python run_forecast.py --history history.json

The history file holds a newest-first list of rounds:
    [{"period": "20250101100", "actual": "7", "status": "WIN"}, ...]

Options:
    --carry IN.json         Carry state returned by the previous run
    --carry-out OUT.json    Where to write the carry state for the next run
    --config config.yaml    Engine configuration
    --seed N                Seed for the random generator
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from forecaster import EngineConfig, ForecastEngine, advance_carry_state
from forecaster.core import CycleCarryState, parse_history
from forecaster.core.logger import setup_from_config, silence_external_loggers

logger = logging.getLogger("forecaster.cli")


def load_json(path: str):
    with open(Path(path), 'r') as f:
        return json.load(f)


def main() -> int:
    parser = argparse.ArgumentParser(description='Forecast the next BIG/SMALL round')
    parser.add_argument('--history', type=str, required=True, help='Newest-first history JSON file')
    parser.add_argument('--carry', type=str, help='Carry state JSON from the previous run')
    parser.add_argument('--carry-out', type=str, help='Write the next carry state to this file')
    parser.add_argument('--config', type=str, default='config.yaml', help='Config file path')
    parser.add_argument('--seed', type=int, help='Random seed (overrides config)')

    args = parser.parse_args()

    try:
        config = EngineConfig.load(args.config)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    setup_from_config(config.logging)
    silence_external_loggers()
    if args.seed is not None:
        config.seed = args.seed

    try:
        raw_history = load_json(args.history)
        raw_carry = load_json(args.carry) if args.carry else None
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Cannot read input: {e}")
        return 1

    if not isinstance(raw_history, list):
        logger.error(f"History file must hold a JSON list, got {type(raw_history).__name__}")
        return 1

    history = parse_history(raw_history)
    if len(history) < len(raw_history):
        logger.warning(f"Dropped {len(raw_history) - len(history)} malformed records")

    carry = CycleCarryState.from_dict(raw_carry)
    engine = ForecastEngine(config)
    result = engine.predict(history, carry)
    next_carry = advance_carry_state(carry, result, history)

    if args.carry_out:
        try:
            with open(Path(args.carry_out), 'w') as f:
                json.dump(next_carry.to_dict(), f, indent=2)
        except OSError as e:
            logger.error(f"Cannot write carry state: {e}")
            return 1

    print(json.dumps(result.to_dict(), indent=2))
    return 0


if __name__ == '__main__':
    sys.exit(main())
