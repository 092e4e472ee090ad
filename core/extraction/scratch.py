"""Scoped temporary files for extraction passes that need a path on disk."""

import logging
import os
import tempfile
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

logger = logging.getLogger("pactwise.scratch")


@contextmanager
def scratch_file(data: bytes, suffix: str = ".pdf") -> Iterator[Path]:
    """Write ``data`` to a uniquely named temp file and delete it on exit.

    The file is removed on every exit path. A failure to remove it is logged
    and swallowed so it never replaces an exception raised inside the block.
    """
    path = Path(tempfile.gettempdir()) / f"{uuid.uuid4().hex}{suffix}"
    path.write_bytes(data)
    try:
        yield path
    finally:
        try:
            os.unlink(path)
        except OSError as e:
            logger.warning(f"Failed to remove scratch file {path}: {e}")
