"""Abstract base class for blob stores.

The abstraction hides:
- Where uploaded bytes live (local directory, object storage, ...)
- How opaque reference strings map onto stored objects
"""

from abc import ABC, abstractmethod


class BlobStore(ABC):
    """Write-once storage for uploaded images, addressed by reference strings."""

    @abstractmethod
    async def store(self, data: bytes, kind: str, filename: str | None = None) -> str:
        """Store bytes and return an opaque reference.

        Args:
            data: Raw file content
            kind: Upload category ("avatar", "background", "chat")
            filename: Original client filename, used for the extension only

        Returns:
            Reference string usable later with resolve()
        """

    @abstractmethod
    async def resolve(self, ref: str) -> bytes:
        """Read the bytes behind a reference.

        Raises:
            BlobNotFoundError: If the reference is invalid or nothing is stored there
        """

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""
