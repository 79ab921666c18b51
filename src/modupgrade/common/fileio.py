"""File read/write helpers that report failures as PersistenceFailure."""
from __future__ import annotations

import logging
import os
import tempfile

from ..errors import PersistenceFailure

logger = logging.getLogger(__name__)


def read_text(path: str) -> str:
    try:
        with open(path, "r", encoding="utf-8", newline="") as fh:
            return fh.read()
    except (OSError, UnicodeDecodeError) as e:
        raise PersistenceFailure(f"error reading {path}: {e}") from e


def atomic_write(path: str, content: str) -> None:
    """Replace the file at path with content.

    The new content is written to a temporary file in the same directory and
    moved into place, so a reader never sees a half-written file. The file's
    permission bits are preserved.
    """
    directory = os.path.dirname(os.path.abspath(path))
    try:
        mode = os.stat(path).st_mode & 0o777
    except FileNotFoundError:
        mode = 0o644
    except OSError as e:
        raise PersistenceFailure(f"error writing {path}: {e}") from e

    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(prefix=".modupgrade-", dir=directory)
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path is not None and os.path.exists(tmp_path):
            try:
                os.unlink(tmp_path)
            except OSError:
                logger.debug("Could not remove temporary file %s", tmp_path)
        raise PersistenceFailure(f"error writing {path}: {e}") from e
    logger.debug("Wrote %s", path)
