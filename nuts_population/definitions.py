"""
NUTS3 Population Pipeline - Main Definitions

Dagster definitions for the Eurostat NUTS3 population retrieval stage.
This module brings together the assets, job and resources for execution.

Architecture:
- One asset group (nuts3_population) from request validation to GeoPackage
- Pure processing utilities for the year policy, filtering and the join
- Provider resources with explicit resolution / EPSG / cache configuration

Data Flow:
Request → GISCO NUTS3 polygons ─┐
        → Eurostat demo_r_pjangrp3 ┴→ Left join → GeoPackage (nuts3_pop)
"""

from dagster import Definitions

from nuts_population.assets.nuts_population import NUTS_POPULATION_ASSETS
from nuts_population.jobs.pipelines import nuts3_population_job
from nuts_population.resources.providers import default_resources


defs = Definitions(
    assets=NUTS_POPULATION_ASSETS,
    jobs=[nuts3_population_job],
    resources=default_resources()
)
