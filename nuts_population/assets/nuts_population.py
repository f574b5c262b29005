"""
NUTS3 population assets for the Eurostat retrieval pipeline.

Handles the complete process for one country and year:
1. Request validation against the NUTS / population year policy
2. NUTS3 polygon download from GISCO and country selection
3. Eurostat population table download and filtering
4. Left join of population counts onto the polygons
5. GeoPackage export
"""

import traceback

import geopandas as gpd
import pandas as pd
from dagster import AssetExecutionContext, Config, Output, asset

from ..resources.providers import (
    EurostatResource,
    GeoPackageResource,
    GiscoResource,
    get_data_source_config,
)
from ..utils.compatibility import PopulationRequest, build_population_request
from ..utils.eurostat_client import observation_dimensions
from ..utils.data_processing import (
    REGION_ID_COLUMN,
    filter_population_stats,
    find_duplicate_regions,
    merge_population,
    select_country_regions,
    summarize_population,
)

GROUP_NAME = "nuts3_population"


class NutsPopulationConfig(Config):
    """Run parameters, mirroring the four CLI arguments."""

    country_code: str
    nuts_year: int
    pop_year: int
    output_gpkg_path: str


@asset(
    description="Validate country code and NUTS / population year combination",
    group_name=GROUP_NAME
)
def nuts_population_request(context: AssetExecutionContext, config: NutsPopulationConfig) -> Output[PopulationRequest]:
    """
    Normalize the run parameters and enforce the allowed year combinations.

    Every download asset depends on this one, so an invalid request stops the
    run before any network access.

    Returns:
        Output containing the validated PopulationRequest
    """
    context.log.info(
        f"NUTS3 population run started for country: {config.country_code} "
        f"| NUTS: {config.nuts_year} | Pop: {config.pop_year}"
    )

    try:
        request = build_population_request(
            config.country_code,
            config.nuts_year,
            config.pop_year,
            config.output_gpkg_path,
        )
    except Exception as e:
        context.log.error(f"Invalid request: {e}")
        raise

    return Output(
        request,
        metadata={
            "country_code": request.country_code,
            "nuts_year": request.nuts_year,
            "pop_year": request.pop_year,
            "population_column": request.population_column,
        }
    )


@asset(
    description="Download NUTS3 polygons from GISCO and keep the requested country",
    group_name=GROUP_NAME
)
def nuts3_geometries(
    context: AssetExecutionContext,
    nuts_population_request: PopulationRequest,
    gisco: GiscoResource,
) -> Output[gpd.GeoDataFrame]:
    """
    Fetch the NUTS3 collection for the requested release and select one country.

    Selection uses the GISCO CNTR_CODE attribute.

    Returns:
        Output containing the country's NUTS3 GeoDataFrame
    """
    request = nuts_population_request
    source = get_data_source_config("nuts_geometries")
    context.log.info(
        f"Fetching NUTS{request.level} boundaries (Year {request.nuts_year}) from {source['source_name']}..."
    )

    try:
        all_regions = gisco.fetch_regions(request.nuts_year, request.level)
        context.log.info(f"{source['source_name']} returned {len(all_regions)} regions")

        regions = select_country_regions(all_regions, request.country_code, request.nuts_year)
        context.log.info(f"Selected {len(regions)} NUTS3 regions for {request.country_code}")
    except Exception as e:
        context.log.error(f"Failed to prepare NUTS3 geometries: {e}")
        context.log.error(f"Traceback: {traceback.format_exc()}")
        raise

    return Output(
        regions,
        metadata={
            "data_source": source["source_full_name"],
            "regions_total": len(all_regions),
            "regions_selected": len(regions),
            "crs": str(regions.crs),
            "columns": [str(col) for col in regions.columns],
        }
    )


@asset(
    description="Download the Eurostat demo_r_pjangrp3 table and keep total NUTS3 population",
    group_name=GROUP_NAME
)
def eurostat_population(
    context: AssetExecutionContext,
    nuts_population_request: PopulationRequest,
    eurostat: EurostatResource,
) -> Output[pd.DataFrame]:
    """
    Fetch the full population table and filter it to the requested year,
    NUTS level 3, both sexes, all ages and the requested country.

    Returns:
        Output containing the filtered observations
    """
    request = nuts_population_request
    source = get_data_source_config("population")
    context.log.info(f"Fetching {source['source_name']} population table ({eurostat.dataset_id})...")

    try:
        observations = eurostat.fetch_observations()
        context.log.info(f"Eurostat returned {len(observations):,} observations")

        context.log.info(f"Filtering for population year: {request.pop_year}")
        filtered = filter_population_stats(observations, request.pop_year, request.country_code)
    except Exception as e:
        context.log.error(f"Failed to prepare Eurostat population data: {e}")
        context.log.error(f"Traceback: {traceback.format_exc()}")
        raise

    return Output(
        filtered,
        metadata={
            "data_source": source["source_full_name"],
            "dataset_id": eurostat.dataset_id,
            "observations_total": len(observations),
            "dimensions": observation_dimensions(observations),
            "observations_selected": len(filtered),
            "duplicate_regions": len(find_duplicate_regions(filtered)),
        }
    )


@asset(
    description="Left-join population counts onto NUTS3 polygons",
    group_name=GROUP_NAME
)
def nuts3_population(
    context: AssetExecutionContext,
    nuts_population_request: PopulationRequest,
    nuts3_geometries: gpd.GeoDataFrame,
    eurostat_population: pd.DataFrame,
) -> Output[gpd.GeoDataFrame]:
    """
    Combine geometries and population into one dataset.

    Every polygon is kept; regions without a population row get a missing
    value in POP_<year>.

    Returns:
        Output containing the merged GeoDataFrame
    """
    request = nuts_population_request
    context.log.info(f"Combining Eurostat data for country: {request.country_code}")

    duplicates = find_duplicate_regions(eurostat_population)

    try:
        merged = merge_population(nuts3_geometries, eurostat_population, request.population_column)
    except Exception as e:
        context.log.error(f"Failed to combine geometries with population: {e}")
        raise

    summary = summarize_population(merged, request.population_column)
    if summary["unmatched_regions"]:
        unmatched = merged.loc[merged[request.population_column].isna(), REGION_ID_COLUMN].tolist()
        context.log.warning(f"No population value for {summary['unmatched_regions']} region(s): {unmatched}")
    context.log.info(f"Merge summary: {summary}")

    return Output(
        merged,
        metadata={
            **summary,
            "population_column": request.population_column,
            "duplicate_regions": len(duplicates),
        }
    )


@asset(
    description="Write merged NUTS3 population data to a GeoPackage",
    group_name=GROUP_NAME
)
def nuts3_population_gpkg(
    context: AssetExecutionContext,
    nuts_population_request: PopulationRequest,
    nuts3_population: gpd.GeoDataFrame,
    geopackage: GeoPackageResource,
) -> Output[str]:
    """
    Export the merged dataset, replacing any previous file.

    Returns:
        Output containing the written file path
    """
    request = nuts_population_request

    try:
        written = geopackage.write(nuts3_population, str(request.output_path))
    except Exception as e:
        context.log.error(f"Failed to write GeoPackage: {e}")
        context.log.error(f"Traceback: {traceback.format_exc()}")
        raise

    context.log.info(f"NUTS3 population run finished. Data saved to {written}")

    return Output(
        str(written),
        metadata={
            "output_path": str(written),
            "layer_name": geopackage.layer_name,
            "features_written": len(nuts3_population),
            "file_size_mb": round(written.stat().st_size / (1024 * 1024), 2),
        }
    )


NUTS_POPULATION_ASSETS = [
    nuts_population_request,
    nuts3_geometries,
    eurostat_population,
    nuts3_population,
    nuts3_population_gpkg,
]
