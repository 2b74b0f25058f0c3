from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import BinaryIO

logger = logging.getLogger(__name__)

SAFE_NAME = re.compile(r"^[A-Za-z0-9._-]+$")
CHUNK_SIZE = 1024 * 1024


class BlobTooLargeError(Exception):
    def __init__(self, limit: int):
        super().__init__(f"blob exceeds {limit} bytes")
        self.limit = limit


class FilesystemBlobStore:
    """Flat directory of blobs keyed by generated filename."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def path(self, name: str) -> Path:
        if not SAFE_NAME.match(name) or name.startswith("."):
            raise ValueError(f"unsafe blob name: {name!r}")
        return self.root / name

    def exists(self, name: str) -> bool:
        return self.path(name).is_file()

    def write(self, name: str, stream: BinaryIO, max_bytes: int | None = None) -> int:
        """Stream ``stream`` to disk atomically and return the byte count."""
        dest = self.path(name)
        self.root.mkdir(parents=True, exist_ok=True)
        tmp = dest.with_suffix(dest.suffix + ".part")
        size = 0
        try:
            with tmp.open("wb") as f:
                while chunk := stream.read(CHUNK_SIZE):
                    size += len(chunk)
                    if max_bytes is not None and size > max_bytes:
                        raise BlobTooLargeError(max_bytes)
                    f.write(chunk)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
        tmp.replace(dest)  # atomic move
        return size

    def delete(self, name: str) -> bool:
        p = self.path(name)
        if not p.exists():
            logger.warning("blob %s already missing", name)
            return False
        p.unlink()
        return True
