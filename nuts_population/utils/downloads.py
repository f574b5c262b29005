"""
Streamed file download shared by the GISCO and Eurostat clients
"""

import logging
import uuid
from pathlib import Path

import requests

CHUNK_SIZE = 8192


def download_file(
    session: requests.Session,
    url: str,
    target: Path,
    timeout: int,
    label: str,
    logger: logging.Logger,
) -> Path:
    """
    Stream a provider file to disk.

    The body goes to a hidden ``.part`` sibling first and replaces ``target``
    only once complete, so an interrupted download never leaves a truncated
    file where the cache looks for it.

    Args:
        session: Session used for the request
        url: File URL
        target: Final location (parent directories are created)
        timeout: Request timeout in seconds
        label: What is being downloaded, for the log messages
        logger: Logger of the calling client

    Returns:
        target

    Raises:
        requests.RequestException: On connection errors or an HTTP error status
    """
    logger.info(f"Downloading {label} from: {url}")
    target.parent.mkdir(parents=True, exist_ok=True)
    partial = target.with_name(f".{target.name}.{uuid.uuid4().hex}.part")

    try:
        response = session.get(url, stream=True, timeout=timeout)
        response.raise_for_status()
        with open(partial, "wb") as f:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    f.write(chunk)
        partial.replace(target)
    finally:
        if partial.exists():
            partial.unlink()

    logger.info(f"Downloaded {label}: {target} ({target.stat().st_size} bytes)")
    return target
