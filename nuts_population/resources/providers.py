"""
Provider resources and configuration for the NUTS3 population pipeline.

Provides the GISCO, Eurostat and GeoPackage collaborators as Dagster
resources, plus the data source registry.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import geopandas as gpd
import pandas as pd
from dagster import ConfigurableResource

from ..utils.eurostat_client import EUROSTAT_API_URL, POPULATION_DATASET, EurostatClient
from ..utils.compatibility import VALID_YEAR_RANGES
from ..utils.geopackage_writer import DEFAULT_DRIVER, DEFAULT_LAYER_NAME, write_geopackage
from ..utils.gisco_client import GISCO_NUTS_URL, GiscoClient


# Provider endpoints and descriptions, read by the resources below
DATA_SOURCES: Dict[str, Dict[str, Any]] = {
    'nuts_geometries': {
        'source_name': 'GISCO',
        'source_full_name': 'Geographic Information System of the Commission (Eurostat)',
        'category': 'boundaries',
        'base_url': GISCO_NUTS_URL,
        'description': 'NUTS region polygons by classification release',
        'years_available': sorted(VALID_YEAR_RANGES),
        'update_frequency': 'per NUTS release'
    },
    'population': {
        'source_name': 'Eurostat',
        'source_full_name': 'Eurostat dissemination API',
        'category': 'demography',
        'base_url': EUROSTAT_API_URL,
        'description': 'Population on 1 January by age group, sex and NUTS3 region',
        'dataset_id': POPULATION_DATASET,
        'update_frequency': 'annual'
    }
}


class GiscoResource(ConfigurableResource):
    """NUTS boundary provider settings: resolution, EPSG code and cache behaviour."""

    resolution: str = "01"
    epsg: str = "3035"
    cache_enabled: bool = True
    update_cache: bool = False
    cache_dir: Optional[str] = None
    timeout: int = 300

    def get_client(self) -> GiscoClient:
        source = get_data_source_config("nuts_geometries")
        return GiscoClient(
            resolution=self.resolution,
            epsg=self.epsg,
            cache_enabled=self.cache_enabled,
            update_cache=self.update_cache,
            cache_dir=self.cache_dir,
            timeout=self.timeout,
            base_url=source["base_url"],
        )

    def fetch_regions(self, nuts_year: int, level: int = 3) -> gpd.GeoDataFrame:
        return self.get_client().fetch_regions(nuts_year, level)


class EurostatResource(ConfigurableResource):
    """Population table provider settings."""

    dataset_id: str = DATA_SOURCES["population"]["dataset_id"]
    cache_enabled: bool = True
    update_cache: bool = False
    cache_dir: Optional[str] = None
    timeout: int = 300

    def get_client(self) -> EurostatClient:
        source = get_data_source_config("population")
        return EurostatClient(
            cache_enabled=self.cache_enabled,
            update_cache=self.update_cache,
            cache_dir=self.cache_dir,
            timeout=self.timeout,
            base_url=source["base_url"],
        )

    def fetch_observations(self) -> pd.DataFrame:
        return self.get_client().fetch_observations(self.dataset_id)


class GeoPackageResource(ConfigurableResource):
    """Output writer settings."""

    layer_name: str = DEFAULT_LAYER_NAME
    driver: str = DEFAULT_DRIVER

    def write(self, dataset: gpd.GeoDataFrame, output_path: str) -> Path:
        return write_geopackage(dataset, output_path, layer_name=self.layer_name, driver=self.driver)


def default_resources() -> Dict[str, ConfigurableResource]:
    """Resources used by Definitions and the CLI unless overridden."""
    return {
        "gisco": GiscoResource(),
        "eurostat": EurostatResource(),
        "geopackage": GeoPackageResource(),
    }


def get_data_source_config(source_name: str) -> Dict[str, Any]:
    """Registry entry for 'nuts_geometries' or 'population'; KeyError lists the known names."""
    try:
        return DATA_SOURCES[source_name]
    except KeyError:
        raise KeyError(f"No provider named '{source_name}'. Available: {sorted(DATA_SOURCES)}") from None
