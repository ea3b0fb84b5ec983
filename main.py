"""
Command-line runner: analyze one rectangle and print the result as JSON.

    python main.py 40.70 -74.02 40.72 -74.00 --grid-size 9
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace

from core.analyzer import AnalysisOrchestrator
from core.api_layer import handle_analyze_request
from core.config import EngineSettings
from core.factors import build_factor_provider


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Estimate restoration potential of a rectangle.")
    parser.add_argument("sw_lat", type=float, help="South-west latitude")
    parser.add_argument("sw_lng", type=float, help="South-west longitude")
    parser.add_argument("ne_lat", type=float, help="North-east latitude")
    parser.add_argument("ne_lng", type=float, help="North-east longitude")
    parser.add_argument("--grid-size", type=int, default=None,
                        help="Number of sample points (perfect square)")
    parser.add_argument("--real", action="store_true",
                        help="Use live open-data sources instead of fallback formulas")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s │ %(name)-20s │ %(levelname)-8s │ %(message)s',
        datefmt='%H:%M:%S',
        stream=sys.stderr,
    )

    settings = EngineSettings.from_env()
    if args.real:
        settings = replace(settings, use_real_data=True)
    provider = build_factor_provider(settings)
    orchestrator = AnalysisOrchestrator(provider, settings)

    payload = {
        "coordinates": {"bounds": [[args.sw_lat, args.sw_lng], [args.ne_lat, args.ne_lng]]},
        "gridSize": args.grid_size,
    }
    try:
        status, body = asyncio.run(handle_analyze_request(payload, orchestrator))
    finally:
        provider.close()
    print(json.dumps(body, indent=2))
    return 0 if status == 200 else 1


if __name__ == "__main__":
    sys.exit(main())
