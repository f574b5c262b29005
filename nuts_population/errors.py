"""
Error types for the NUTS3 population pipeline.

Every failure that ends a run is one of these. The CLI reports the message
and exits non-zero; Dagster assets log them and re-raise.
"""


class NutsPopulationError(Exception):
    """Base class for all pipeline failures."""


class InputValidationError(NutsPopulationError, ValueError):
    """Malformed country code or non-numeric years."""


class CompatibilityError(NutsPopulationError):
    """NUTS year and population year cannot be combined."""


class EmptyResultError(NutsPopulationError):
    """A filter step produced zero rows."""


class SchemaError(NutsPopulationError):
    """An expected column is missing from a provider response."""


class ValidationError(NutsPopulationError):
    """Joined data failed a post-condition (e.g. non-numeric population values)."""


class WriteError(NutsPopulationError):
    """The GeoPackage could not be written to its destination."""
