"""
GeoPackage export for merged NUTS3 population data.
"""

import logging
import uuid
from pathlib import Path
from typing import Union

import geopandas as gpd

from ..errors import WriteError

logger = logging.getLogger(__name__)

DEFAULT_LAYER_NAME = "nuts3_pop"
DEFAULT_DRIVER = "GPKG"


def write_geopackage(
    dataset: gpd.GeoDataFrame,
    output_path: Union[str, Path],
    layer_name: str = DEFAULT_LAYER_NAME,
    driver: str = DEFAULT_DRIVER,
) -> Path:
    """
    Write one layer to a GeoPackage, replacing any existing file.

    The layer is written to a temporary sibling file first and moved over
    the destination once complete, so a failed write never leaves a partial
    file at output_path.

    Args:
        dataset: Merged GeoDataFrame
        output_path: Destination file
        layer_name: Name of the single layer
        driver: OGR driver name

    Returns:
        Resolved destination path

    Raises:
        WriteError: If the directory cannot be created or serialization fails
    """
    output_path = Path(output_path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise WriteError(f"Cannot create output directory {output_path.parent}: {e}") from e

    tmp_path = output_path.with_name(f".{output_path.stem}.{uuid.uuid4().hex}.tmp{output_path.suffix or '.gpkg'}")
    logger.info(f"Writing {len(dataset)} features to temporary file {tmp_path}")

    try:
        dataset.to_file(tmp_path, layer=layer_name, driver=driver)
        tmp_path.replace(output_path)
    except Exception as e:
        raise WriteError(f"Failed to write GeoPackage {output_path}: {e}") from e
    finally:
        if tmp_path.exists():
            tmp_path.unlink()

    logger.info(f"Saved layer '{layer_name}' to {output_path}")
    return output_path.resolve()
