"""
Jobs module for the NUTS3 population pipeline.

Contains the asset job and the in-process runner used by the CLI.
"""
