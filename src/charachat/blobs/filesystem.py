"""Filesystem blob store.

Files are written under one upload directory and addressed as
``/api/uploads/<name>``. The legacy ``/uploads/<name>`` form also resolves.
"""

import asyncio
import time
from pathlib import Path, PurePosixPath
from uuid import uuid4

from ..errors import BlobNotFoundError
from .base import BlobStore

REF_PREFIX = "/api/uploads/"
LEGACY_REF_PREFIX = "/uploads/"


class FilesystemBlobStore(BlobStore):
    """Blob store backed by a local directory."""

    def __init__(self, root: str | Path = "./uploads") -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    async def store(self, data: bytes, kind: str, filename: str | None = None) -> str:
        """Write bytes to a new file named after the upload kind."""
        suffix = PurePosixPath(filename).suffix.lower() if filename else ""
        name = f"{kind}_{int(time.time() * 1000)}_{uuid4().hex[:8]}{suffix}"
        path = self._root / name

        def _write() -> None:
            self._root.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        await asyncio.to_thread(_write)
        return f"{REF_PREFIX}{name}"

    async def resolve(self, ref: str) -> bytes:
        """Read the file behind an ``/api/uploads/`` or ``/uploads/`` reference."""
        path = self.path_for(ref)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except (FileNotFoundError, IsADirectoryError) as e:
            raise BlobNotFoundError(f"No blob stored for {ref}") from e

    def path_for(self, ref: str) -> Path:
        """Map a reference (or a bare relative name) onto a path inside the root.

        Raises:
            BlobNotFoundError: If the reference escapes the upload directory
        """
        relative = ref
        for prefix in (REF_PREFIX, LEGACY_REF_PREFIX):
            if ref.startswith(prefix):
                relative = ref[len(prefix):]
                break

        parts = PurePosixPath(relative).parts
        if not parts or ".." in parts or PurePosixPath(relative).is_absolute():
            raise BlobNotFoundError(f"Invalid blob reference: {ref}")

        return self._root.joinpath(*parts)

    @property
    def backend_type(self) -> str:
        return "filesystem"
