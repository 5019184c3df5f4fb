"""ZIP archive creation for request files."""

from __future__ import annotations

import logging
import os
import zipfile
from typing import Sequence

from domain.errors import ArchiveError

log = logging.getLogger(__name__)


def zip_files(zip_path: str, files: Sequence[str]) -> str:
    """Write ``files`` flat into ``zip_path`` and return the archive path.

    Raises ArchiveError when ``files`` is empty (no empty archives are ever
    produced) or when the archive cannot be written.
    """
    if not files:
        raise ArchiveError(
            "There are no files to put into the ZIP archive.", context={"archive": zip_path}
        )
    try:
        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for path in files:
                zf.write(path, arcname=os.path.basename(path))
    except (OSError, zipfile.BadZipFile) as e:
        raise ArchiveError(
            f"Failed to create the request ZIP file: {e}", context={"archive": zip_path}
        ) from e
    log.info("ZIP created at %s", zip_path)
    return zip_path
