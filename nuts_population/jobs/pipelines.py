"""
Pipeline job definitions for the NUTS3 population pipeline.

Defines:
1. The asset job used from the Dagster UI / daemon
2. An in-process runner used by the command line wrapper
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

from dagster import (
    AssetSelection,
    DagsterUserCodeExecutionError,
    define_asset_job,
    materialize,
    mem_io_manager,
)

from ..assets.nuts_population import GROUP_NAME, NUTS_POPULATION_ASSETS
from ..resources.providers import default_resources
from ..utils.compatibility import build_population_request


nuts3_population_job = define_asset_job(
    name="nuts3_population_job",
    selection=AssetSelection.groups(GROUP_NAME),
    description=(
        "Combine the Eurostat population table (demo_r_pjangrp3) with GISCO NUTS3 "
        "geometries for one country and write a GeoPackage with layer 'nuts3_pop'. "
        "Country, NUTS year, population year and output path come from the "
        "nuts_population_request run config."
    ),
)


def build_run_config(country_code: str, nuts_year: int, pop_year: int, output_gpkg_path: str) -> Dict[str, Any]:
    """Run config for nuts3_population_job / the asset group."""
    config = {
        "country_code": country_code,
        "nuts_year": nuts_year,
        "pop_year": pop_year,
        "output_gpkg_path": output_gpkg_path,
    }
    return {"ops": {"nuts_population_request": {"config": config}}}


def run_nuts3_population(
    country_code: str,
    nuts_year: Union[int, str],
    pop_year: Union[int, str],
    output_gpkg_path: Union[str, Path],
    resources: Optional[Dict[str, Any]] = None,
) -> Path:
    """
    Run the full pipeline in process.

    Inputs are validated before Dagster starts, so bad parameters never reach
    the network. Intermediate assets stay in memory.

    Args:
        country_code: Two-letter country code, e.g. 'DE'
        nuts_year: NUTS release year (2013, 2016, 2021, 2024)
        pop_year: Population reference year compatible with nuts_year
        output_gpkg_path: Destination GeoPackage
        resources: Overrides for the gisco / eurostat / geopackage resources

    Returns:
        Path of the written GeoPackage

    Raises:
        NutsPopulationError: Any validation, selection, join or write failure
    """
    request = build_population_request(country_code, nuts_year, pop_year, output_gpkg_path)

    run_resources = default_resources()
    run_resources.update(resources or {})
    run_resources["io_manager"] = mem_io_manager

    try:
        result = materialize(
            NUTS_POPULATION_ASSETS,
            run_config=build_run_config(
                request.country_code,
                request.nuts_year,
                request.pop_year,
                str(request.output_path),
            ),
            resources=run_resources,
        )
    except DagsterUserCodeExecutionError as e:
        # Surface the asset's own exception rather than Dagster's wrapper
        raise e.user_exception from e

    return Path(result.output_for_node("nuts3_population_gpkg"))
