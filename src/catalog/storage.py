"""Loading and atomically saving catalog files."""

from __future__ import annotations

import logging
import os
import tempfile

from errors import ValidationError
from .model import Catalog

logger = logging.getLogger(__name__)


def load_catalog(path: str) -> Catalog:
    """Read and interpret a catalog file.

    Args:
        path: Path to ``libs.versions.toml``.

    Returns:
        Catalog: parsed catalog.

    Raises:
        ValidationError: missing file, undecodable bytes or invalid layout.
    """
    if not os.path.isfile(path):
        raise ValidationError(f"Version catalog not found: {path}")
    try:
        # newline="" keeps \r\n intact so untouched bytes round-trip
        with open(path, "r", encoding="utf-8", newline="") as handle:
            text = handle.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise ValidationError(f"Unable to read version catalog {path}: {exc}") from exc
    catalog = Catalog.from_text(text)
    logger.debug(
        "Loaded catalog %s: %d versions, %d libraries, %d plugins",
        path, len(catalog.versions), len(catalog.libraries), len(catalog.plugins),
    )
    return catalog


def save_catalog(path: str, catalog: Catalog) -> None:
    """Write the catalog through a temporary file and replace the original.

    The original file is only replaced after the new content has been fully
    written and flushed to disk; on any failure it is left untouched.

    Raises:
        OSError: when the temporary file cannot be written or moved.
    """
    directory = os.path.dirname(os.path.abspath(path))
    fd, tmp_path = tempfile.mkstemp(prefix=".libs-", suffix=".toml.tmp", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(catalog.render())
            handle.flush()
            os.fsync(handle.fileno())
        if os.path.exists(path):
            os.chmod(tmp_path, os.stat(path).st_mode & 0o7777)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
    logger.debug("Saved catalog %s", path)
