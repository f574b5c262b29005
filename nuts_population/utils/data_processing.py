"""
Data processing utilities for the NUTS3 population pipeline.

Contains functions for:
- Selecting one country's NUTS3 polygons from the GISCO collection
- Filtering the Eurostat population table to one year, level and country
- Left-joining population counts onto the geometries
"""

import logging
from typing import List

import geopandas as gpd
import pandas as pd

from ..errors import EmptyResultError, SchemaError, ValidationError

logger = logging.getLogger(__name__)

# GISCO attribute names
REGION_ID_COLUMN = "NUTS_ID"
COUNTRY_COLUMN = "CNTR_CODE"

# Eurostat dimension / value names
GEO_COLUMN = "geo"
TIME_COLUMN = "TIME_PERIOD"
SEX_COLUMN = "sex"
AGE_COLUMN = "age"
VALUE_COLUMN = "values"
JOIN_KEY = "_nuts_join_key"

TOTAL_SEX = "T"
TOTAL_AGE = "TOTAL"
NUTS3_CODE_LENGTH = 5

# Markers Eurostat uses for "no observation"
MISSING_VALUE_MARKERS = {"", ":"}


def select_country_regions(regions: gpd.GeoDataFrame, country_code: str, nuts_year: int) -> gpd.GeoDataFrame:
    """
    Keep only the polygons of one country.

    Matches the provider's own country attribute (CNTR_CODE) exactly rather
    than prefix-matching NUTS_ID.

    Args:
        regions: Full NUTS collection for one release year
        country_code: Normalized two-letter code
        nuts_year: Release year, used in the error message

    Returns:
        GeoDataFrame with a fresh RangeIndex and the original CRS

    Raises:
        SchemaError: If CNTR_CODE is absent
        EmptyResultError: If the country has no polygons in this release
    """
    _require_columns(regions, [COUNTRY_COLUMN], "NUTS geometries")

    selected = regions[regions[COUNTRY_COLUMN] == country_code].reset_index(drop=True)
    if len(selected) == 0:
        raise EmptyResultError(
            f"No NUTS3 polygons found for country_code = '{country_code}' and nuts_year = {nuts_year}."
        )

    logger.info(f"Selected {len(selected)} of {len(regions)} NUTS regions for {country_code}")
    return selected


def filter_population_stats(observations: pd.DataFrame, pop_year: int, country_code: str) -> pd.DataFrame:
    """
    Narrow the Eurostat population table to the rows that can be joined.

    A row is kept when all of the following hold:
    - TIME_PERIOD is 1 January of pop_year (the table encodes years as dates)
    - the geo code has 5 characters, i.e. NUTS level 3
    - sex is 'T' and age is 'TOTAL'
    - the geo code starts with country_code (there is no country column)

    Args:
        observations: Long-format table as returned by the Eurostat client
        pop_year: Population reference year
        country_code: Normalized two-letter code

    Returns:
        Filtered DataFrame with a fresh RangeIndex

    Raises:
        SchemaError: If a required column is absent or TIME_PERIOD is not a date
        EmptyResultError: If no row survives
    """
    _require_columns(
        observations,
        [TIME_COLUMN, GEO_COLUMN, SEX_COLUMN, AGE_COLUMN],
        "Eurostat population table",
    )

    pop_date = pd.Timestamp(year=pop_year, month=1, day=1)
    geo = observations[GEO_COLUMN].astype(str)
    try:
        periods = pd.to_datetime(observations[TIME_COLUMN])
    except (TypeError, ValueError) as e:
        raise SchemaError(f"Eurostat population table column '{TIME_COLUMN}' is not a date: {e}") from e

    mask = (
        (periods == pop_date)
        & (geo.str.len() == NUTS3_CODE_LENGTH)
        & (observations[SEX_COLUMN] == TOTAL_SEX)
        & (observations[AGE_COLUMN] == TOTAL_AGE)
        & geo.str.startswith(country_code)
    )
    filtered = observations[mask].reset_index(drop=True)

    if len(filtered) == 0:
        raise EmptyResultError(
            f"No Eurostat population records found for country_code = '{country_code}', pop_year = {pop_year}."
        )

    logger.info(f"Filtered population table to {len(filtered)} NUTS3 rows for {country_code} {pop_year}")
    return filtered


def find_duplicate_regions(observations: pd.DataFrame) -> List[str]:
    """Return the geo codes that occur more than once, sorted."""
    duplicated = observations[GEO_COLUMN][observations[GEO_COLUMN].duplicated(keep=False)]
    return sorted(duplicated.astype(str).unique().tolist())


def merge_population(
    regions: gpd.GeoDataFrame,
    observations: pd.DataFrame,
    population_column: str,
) -> gpd.GeoDataFrame:
    """
    Left-join population counts onto NUTS3 geometries.

    Every region survives the join. Regions without an observation get a
    missing value. When the table holds several rows for the same geo code
    (e.g. revisions), the first one in table order is used and a warning is
    logged.

    Args:
        regions: One country's NUTS3 polygons
        observations: Filtered population rows
        population_column: Name of the output column, e.g. 'POP_2018'

    Returns:
        GeoDataFrame with the region attributes plus population_column (float)

    Raises:
        SchemaError: If 'values' or 'geo' is missing from observations, or
            NUTS_ID from regions
        ValidationError: If a value is present but not numeric, or the
            row count changed
    """
    # Upstream contract checks come before any join or rename
    _require_columns(observations, [VALUE_COLUMN, GEO_COLUMN], "Eurostat population table")
    _require_columns(regions, [REGION_ID_COLUMN], "NUTS geometries")

    duplicates = find_duplicate_regions(observations)
    if duplicates:
        logger.warning(
            f"Population table has several rows for {len(duplicates)} region(s), "
            f"keeping the first occurrence: {duplicates}"
        )
    right = (
        observations[[GEO_COLUMN, VALUE_COLUMN]]
        .drop_duplicates(subset=GEO_COLUMN, keep="first")
        .rename(columns={GEO_COLUMN: JOIN_KEY, VALUE_COLUMN: population_column})
    )

    region_columns = [col for col in regions.columns if col != population_column]
    merged = regions[region_columns].merge(
        right,
        how="left",
        left_on=REGION_ID_COLUMN,
        right_on=JOIN_KEY,
    ).drop(columns=[JOIN_KEY])

    merged[population_column] = coerce_population_values(
        merged[population_column], merged[REGION_ID_COLUMN]
    )

    if len(merged) != len(regions):
        raise ValidationError(
            f"Join changed the number of regions from {len(regions)} to {len(merged)}."
        )

    return gpd.GeoDataFrame(merged, geometry=regions.geometry.name, crs=regions.crs)


def coerce_population_values(values: pd.Series, region_ids: pd.Series) -> pd.Series:
    """
    Convert population values to float.

    Missing markers (NaN, None, '', ':') become NaN. Anything else that does
    not parse as a number is an error.

    Raises:
        ValidationError: Listing the regions whose value is not numeric
    """
    stripped = values.map(lambda value: value.strip() if isinstance(value, str) else value)
    missing = stripped.isna() | stripped.isin(MISSING_VALUE_MARKERS)

    numeric = pd.to_numeric(stripped.where(~missing), errors="coerce")
    invalid = numeric.isna() & ~missing
    if invalid.any():
        bad = {
            str(region): str(value)
            for region, value in zip(region_ids[invalid], values[invalid])
        }
        raise ValidationError(f"Non-numeric population values for regions: {bad}")

    return numeric.astype("float64")


def summarize_population(merged: gpd.GeoDataFrame, population_column: str) -> dict:
    """Row counts used as asset metadata."""
    matched = int(merged[population_column].notna().sum())
    return {
        "regions": int(len(merged)),
        "matched_regions": matched,
        "unmatched_regions": int(len(merged)) - matched,
        "total_population": float(merged[population_column].sum(skipna=True)),
    }


def _require_columns(df: pd.DataFrame, columns: List[str], label: str) -> None:
    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise SchemaError(
            f"{label} does not contain expected column(s) {missing}. "
            f"Available columns: {list(df.columns)}"
        )
