"""
Assets module for the NUTS3 population pipeline.

Contains the Dagster assets of the nuts3_population group:
- nuts_population_request: Input and year policy validation
- nuts3_geometries / eurostat_population: Provider downloads and filtering
- nuts3_population / nuts3_population_gpkg: Join and export
"""
