"""
NUTS / population year compatibility policy.

Each NUTS classification release is only meaningful for the population
reference years published against it:

- NUTS 2013 -> POP 2014-2017
- NUTS 2016 -> POP 2018-2020
- NUTS 2021 -> POP 2021-2023
- NUTS 2024 -> POP 2024-2030

Everything here is pure: no network, no file system. The request is
validated before any provider is contacted.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

from ..errors import CompatibilityError, InputValidationError


# NUTS release year -> inclusive population year range
VALID_YEAR_RANGES: Dict[int, Tuple[int, int]] = {
    2013: (2014, 2017),
    2016: (2018, 2020),
    2021: (2021, 2023),
    2024: (2024, 2030),
}

NUTS_LEVEL = 3
POPULATION_COLUMN_PREFIX = "POP_"


@dataclass(frozen=True)
class PopulationRequest:
    """Normalized, policy-checked parameters of one pipeline run."""

    country_code: str
    nuts_year: int
    pop_year: int
    output_path: Path
    level: int = NUTS_LEVEL

    @property
    def population_column(self) -> str:
        return population_column_name(self.pop_year)


def population_column_name(pop_year: int) -> str:
    """Year-qualified population column, e.g. ``POP_2018``."""
    return f"{POPULATION_COLUMN_PREFIX}{pop_year}"


def allowed_combinations() -> List[Tuple[int, int]]:
    """
    Enumerate every legal (nuts_year, pop_year) pair.

    Returns:
        Sorted list of pairs covering the full policy table
    """
    return [
        (nuts_year, pop_year)
        for nuts_year, (first, last) in sorted(VALID_YEAR_RANGES.items())
        for pop_year in range(first, last + 1)
    ]


def is_valid_combination(nuts_year: Any, pop_year: Any) -> bool:
    """Total predicate: returns False for anything that is not a legal pair of integers."""
    if isinstance(nuts_year, bool) or isinstance(pop_year, bool):
        return False
    if not isinstance(nuts_year, int) or not isinstance(pop_year, int):
        return False
    year_range = VALID_YEAR_RANGES.get(nuts_year)
    if year_range is None:
        return False
    first, last = year_range
    return first <= pop_year <= last


def describe_valid_configurations() -> str:
    lines = ["--- Valid Configurations ---"]
    for nuts_year, (first, last) in sorted(VALID_YEAR_RANGES.items()):
        lines.append(f"NUTS {nuts_year} -> Pop {first}-{last}")
    lines.append("----------------------------")
    return "\n".join(lines)


def validate_year_combination(nuts_year: int, pop_year: int) -> None:
    """
    Reject NUTS / population year pairs outside the policy table.

    Args:
        nuts_year: NUTS classification release (2013, 2016, 2021, 2024)
        pop_year: Population reference year

    Raises:
        CompatibilityError: With the full table and the requested pair in the message
    """
    if is_valid_combination(nuts_year, pop_year):
        return
    raise CompatibilityError(
        f"\n{describe_valid_configurations()}\n\n"
        f"Requested: NUTS {nuts_year} with Pop {pop_year} is not supported.\n"
    )


def normalize_country_code(country_code: Any) -> str:
    if not isinstance(country_code, str):
        raise InputValidationError(
            f"country_code must be a 2-letter ISO country code (e.g. 'DE'), got {country_code!r}."
        )
    normalized = country_code.strip().upper()
    if len(normalized) != 2 or not normalized.isalpha():
        raise InputValidationError(
            f"country_code must be a 2-letter ISO country code (e.g. 'DE'), got {country_code!r}."
        )
    return normalized


def normalize_year(value: Union[int, str], name: str) -> int:
    if isinstance(value, bool):
        raise InputValidationError(f"{name} must be numeric (e.g. 2016, 2018), got {value!r}.")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise InputValidationError(f"{name} must be numeric (e.g. 2016, 2018), got {value!r}.")


def build_population_request(
    country_code: str,
    nuts_year: Union[int, str],
    pop_year: Union[int, str],
    output_path: Union[str, Path],
) -> PopulationRequest:
    """
    Normalize raw inputs and apply the compatibility policy.

    Args:
        country_code: Two-letter country code, any case
        nuts_year: NUTS release year, int or numeric string
        pop_year: Population reference year, int or numeric string
        output_path: Destination GeoPackage path

    Returns:
        PopulationRequest ready for the fetch steps

    Raises:
        InputValidationError: Malformed country code, years or output path
        CompatibilityError: Year pair outside the policy table
    """
    code = normalize_country_code(country_code)
    nuts = normalize_year(nuts_year, "nuts_year")
    pop = normalize_year(pop_year, "pop_year")

    if output_path is None or str(output_path).strip() == "":
        raise InputValidationError("output_gpkg_path must be a non-empty path.")

    validate_year_combination(nuts, pop)

    return PopulationRequest(
        country_code=code,
        nuts_year=nuts,
        pop_year=pop,
        output_path=Path(output_path),
    )
