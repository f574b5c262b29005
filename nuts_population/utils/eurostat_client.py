"""
Eurostat dissemination API client
Downloads a dataset as compressed TSV and converts it to a long-format table
"""

import gzip
import io
import logging
import tempfile
from pathlib import Path
from typing import List, Optional

import pandas as pd
import requests

from ..errors import SchemaError
from .downloads import download_file
from .gisco_client import default_cache_dir

EUROSTAT_API_URL = "https://ec.europa.eu/eurostat/api/dissemination/sdmx/2.1/data"
POPULATION_DATASET = "demo_r_pjangrp3"
TIME_DIMENSION = "TIME_PERIOD"
GZIP_MAGIC = b"\x1f\x8b"


def parse_eurostat_tsv(text: str) -> pd.DataFrame:
    """
    Convert a Eurostat TSV export into one row per observation.

    The export is wide: the first column packs the dimension codes
    (header ``freq,unit,sex,age,geo\\TIME_PERIOD``) and every other column
    is a year. Cells hold the value followed by optional status flags,
    e.g. ``1234 p``; ``:`` means not available.

    Args:
        text: Decoded TSV content

    Returns:
        DataFrame with one column per dimension, TIME_PERIOD (timestamp at
        1 January), values (numeric token as string, None when missing)
        and flags

    Raises:
        SchemaError: If the header does not have the expected layout
    """
    raw = pd.read_csv(io.StringIO(text), sep="\t", dtype=str, keep_default_na=False)
    key_header = raw.columns[0]

    if "\\" not in key_header:
        raise SchemaError(f"Unexpected Eurostat TSV header: '{key_header}'")
    dims_part, time_part = key_header.split("\\", 1)
    if time_part.strip() != TIME_DIMENSION:
        raise SchemaError(f"Eurostat TSV header does not end with {TIME_DIMENSION}: '{key_header}'")

    dimensions = [dim.strip() for dim in dims_part.split(",")]
    if len(raw) == 0:
        return pd.DataFrame(columns=dimensions + [TIME_DIMENSION, "values", "flags"])

    keys = raw[key_header].str.split(",", expand=True)
    if keys.shape[1] != len(dimensions):
        raise SchemaError(
            f"Eurostat TSV keys have {keys.shape[1]} parts, header names {len(dimensions)}: {dimensions}"
        )
    keys.columns = dimensions

    periods = raw.drop(columns=[key_header])
    periods.columns = [str(col).strip() for col in periods.columns]

    wide = pd.concat([keys, periods], axis=1)
    long = wide.melt(id_vars=dimensions, var_name=TIME_DIMENSION, value_name="cell")

    tokens = long["cell"].str.strip().str.split(n=1, expand=True).reindex(columns=[0, 1])
    values = tokens[0].fillna("")
    long["values"] = values.where(~values.isin(["", ":"]), None)
    long["flags"] = tokens[1].fillna("").str.strip()

    try:
        long[TIME_DIMENSION] = pd.to_datetime(long[TIME_DIMENSION], format="%Y")
    except ValueError as e:
        raise SchemaError(f"Eurostat TSV time periods are not annual: {e}") from e

    return long[dimensions + [TIME_DIMENSION, "values", "flags"]]


def observation_dimensions(observations: pd.DataFrame) -> List[str]:
    """Dimension columns of a parsed table (everything but time, values and flags)."""
    return [col for col in observations.columns if col not in (TIME_DIMENSION, "values", "flags")]


class EurostatClient:
    """
    Fetches complete Eurostat datasets; all filtering happens downstream.
    """

    def __init__(
        self,
        cache_enabled: bool = True,
        update_cache: bool = False,
        cache_dir: Optional[str] = None,
        timeout: int = 300,
        base_url: str = EUROSTAT_API_URL,
    ):
        self.cache_enabled = cache_enabled
        self.update_cache = update_cache
        self.cache_dir = Path(cache_dir) if cache_dir else default_cache_dir()
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self.session = requests.Session()
        self.logger = logging.getLogger(__name__)

    def build_url(self, dataset_id: str) -> str:
        return f"{self.base_url}/{dataset_id}?format=TSV&compressed=true"

    def fetch_observations(self, dataset_id: str = POPULATION_DATASET) -> pd.DataFrame:
        """
        Download (or reuse from cache) a dataset and parse it.

        Args:
            dataset_id: Eurostat table code

        Returns:
            Long-format observations, see parse_eurostat_tsv
        """
        if self.cache_enabled:
            target = self.cache_dir / "eurostat" / f"{dataset_id}.tsv.gz"
            if target.exists() and not self.update_cache:
                self.logger.info(f"Using cached Eurostat table: {target}")
            else:
                self._download(self.build_url(dataset_id), target)
            return self._read(target)

        with tempfile.TemporaryDirectory(prefix="eurostat_") as tmp_dir:
            target = Path(tmp_dir) / f"{dataset_id}.tsv.gz"
            self._download(self.build_url(dataset_id), target)
            return self._read(target)

    def _download(self, url: str, target: Path) -> None:
        download_file(self.session, url, target, self.timeout, "Eurostat table", self.logger)

    def _read(self, path: Path) -> pd.DataFrame:
        payload = path.read_bytes()
        # The API answers with a gzip body unless a proxy already decoded it
        if payload[:2] == GZIP_MAGIC:
            payload = gzip.decompress(payload)
        observations = parse_eurostat_tsv(payload.decode("utf-8"))
        self.logger.info(f"Parsed {len(observations):,} observations from {path.name}")
        return observations
