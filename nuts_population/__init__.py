"""
NUTS3 Population Pipeline

Retrieves GISCO NUTS3 boundaries and Eurostat population counts for one
country and year, joins them and writes a GeoPackage. First data-retrieval
stage of the wider geographic analysis workflow.
"""

__version__ = "1.0.0"
__author__ = "NUTS Population Team"
