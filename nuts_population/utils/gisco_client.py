"""
GISCO NUTS boundary client
Downloads NUTS polygons from the Eurostat GISCO distribution service
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

import geopandas as gpd
import requests

from ..errors import CompatibilityError, InputValidationError
from .compatibility import VALID_YEAR_RANGES
from .downloads import download_file

GISCO_NUTS_URL = "https://gisco-services.ec.europa.eu/distribution/v2/nuts/geojson"
VALID_RESOLUTIONS = ("01", "03", "10", "20", "60")
VALID_LEVELS = (0, 1, 2, 3)
DEFAULT_CACHE_DIR = Path.home() / ".cache" / "nuts_population"


def default_cache_dir() -> Path:
    return Path(os.getenv("NUTS_POPULATION_CACHE_DIR", str(DEFAULT_CACHE_DIR)))


class GiscoClient:
    """
    Fetches NUTS region polygons for one release year and level.

    Files are cached under ``cache_dir/gisco``; a cached file is reused unless
    ``update_cache`` is set. With ``cache_enabled=False`` downloads go to a
    temporary directory that is removed after reading.
    """

    def __init__(
        self,
        resolution: str = "01",
        epsg: str = "3035",
        cache_enabled: bool = True,
        update_cache: bool = False,
        cache_dir: Optional[str] = None,
        timeout: int = 300,
        base_url: str = GISCO_NUTS_URL,
    ):
        if resolution not in VALID_RESOLUTIONS:
            raise InputValidationError(
                f"Unsupported GISCO resolution '{resolution}'. Valid: {list(VALID_RESOLUTIONS)}"
            )
        self.resolution = resolution
        self.epsg = str(epsg)
        self.cache_enabled = cache_enabled
        self.update_cache = update_cache
        self.cache_dir = Path(cache_dir) if cache_dir else default_cache_dir()
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self.session = requests.Session()
        self.logger = logging.getLogger(__name__)

    def file_name(self, nuts_year: int, level: int) -> str:
        """GISCO file name, e.g. NUTS_RG_01M_2016_3035_LEVL_3.geojson"""
        return f"NUTS_RG_{self.resolution}M_{nuts_year}_{self.epsg}_LEVL_{level}.geojson"

    def build_url(self, nuts_year: int, level: int) -> str:
        return f"{self.base_url}/{self.file_name(nuts_year, level)}"

    def fetch_regions(self, nuts_year: int, level: int = 3) -> gpd.GeoDataFrame:
        """
        Download (or reuse from cache) and read the NUTS polygons.

        Args:
            nuts_year: NUTS release year (2013, 2016, 2021, 2024)
            level: NUTS level, 0-3

        Returns:
            GeoDataFrame with the GISCO attributes (NUTS_ID, CNTR_CODE, ...)
            in EPSG:<epsg>
        """
        if nuts_year not in VALID_YEAR_RANGES:
            raise CompatibilityError(
                f"Unsupported NUTS year {nuts_year}. Valid: {sorted(VALID_YEAR_RANGES)}"
            )
        if level not in VALID_LEVELS:
            raise InputValidationError(f"Unsupported NUTS level {level}. Valid: {list(VALID_LEVELS)}")

        if self.cache_enabled:
            target = self.cache_dir / "gisco" / self.file_name(nuts_year, level)
            if target.exists() and not self.update_cache:
                self.logger.info(f"Using cached NUTS file: {target}")
            else:
                self._download(self.build_url(nuts_year, level), target)
            return self._read(target)

        with tempfile.TemporaryDirectory(prefix="gisco_") as tmp_dir:
            target = Path(tmp_dir) / self.file_name(nuts_year, level)
            self._download(self.build_url(nuts_year, level), target)
            return self._read(target)

    def _download(self, url: str, target: Path) -> None:
        download_file(self.session, url, target, self.timeout, "NUTS boundaries", self.logger)

    def _read(self, path: Path) -> gpd.GeoDataFrame:
        regions = gpd.read_file(path)
        if regions.crs is None:
            regions = regions.set_crs(f"EPSG:{self.epsg}")
        self.logger.info(f"Read {len(regions)} NUTS regions from {path.name} (CRS {regions.crs})")
        return regions
