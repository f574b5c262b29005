"""
Command line wrapper for the NUTS3 population pipeline.

Usage:
    nuts-population <country_code> <nuts_year> <pop_year> <output_gpkg_path>
"""

import argparse
import logging
import sys
from typing import List, Optional

import requests

from .errors import NutsPopulationError
from .jobs.pipelines import run_nuts3_population


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nuts-population",
        description="Combine Eurostat population (demo_r_pjangrp3) with GISCO NUTS3 geometries.",
    )
    parser.add_argument("country_code", help="2-letter country code, e.g. DE")
    parser.add_argument("nuts_year", help="NUTS version year: 2013, 2016, 2021 or 2024")
    parser.add_argument("pop_year", help="Population reference year compatible with nuts_year")
    parser.add_argument("output_gpkg_path", help="Destination GeoPackage file")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    # argparse exits with status 2 and a usage line on a wrong argument count
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=logging.INFO)

    try:
        output_path = run_nuts3_population(
            country_code=args.country_code,
            nuts_year=args.nuts_year,
            pop_year=args.pop_year,
            output_gpkg_path=args.output_gpkg_path,
        )
    except (NutsPopulationError, requests.RequestException) as e:
        print(f"Error during script execution: {e}", file=sys.stderr)
        return 1

    print(f"NUTS3 population data saved to {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
