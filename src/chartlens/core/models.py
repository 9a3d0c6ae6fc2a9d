"""
Request value types: an uploaded chart image and an analysis request.

Both are immutable. A ChartImage carries the upload metadata (name, size,
MIME type, modification time) and either the bytes themselves or the path
they can be read from.
"""

from __future__ import annotations

import asyncio
import mimetypes
import time
from dataclasses import dataclass, field
from pathlib import Path

from chartlens.utils.exceptions import EncodingError


@dataclass(frozen=True)
class ChartImage:
    """An uploaded chart image and its metadata."""

    name: str
    size: int
    mime_type: str
    last_modified: float
    data: bytes | None = field(default=None, repr=False)
    path: Path | None = None

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        name: str = "chart",
        mime_type: str = "",
        last_modified: float | None = None,
    ) -> ChartImage:
        """Wrap in-memory image bytes (e.g. an upload body)."""
        if not mime_type:
            mime_type = mimetypes.guess_type(name)[0] or ""
        return cls(
            name=name,
            size=len(data),
            mime_type=mime_type,
            last_modified=time.time() if last_modified is None else last_modified,
            data=data,
        )

    @classmethod
    def from_path(cls, path: str | Path) -> ChartImage:
        """
        Describe an image file without reading its content.

        Raises:
            EncodingError: If the file does not exist or cannot be stat'ed
        """
        p = Path(path)
        try:
            st = p.stat()
        except OSError as e:
            raise EncodingError(f"Cannot read image file: {e}", image_name=p.name) from e
        if not p.is_file():
            raise EncodingError(f"Not a file: {p}", image_name=p.name)
        return cls(
            name=p.name,
            size=st.st_size,
            mime_type=mimetypes.guess_type(p.name)[0] or "",
            last_modified=st.st_mtime,
            path=p,
        )

    async def read_bytes(self) -> bytes:
        """
        Return the image payload, reading the file off the event loop if needed.

        Raises:
            EncodingError: If there is no payload or the file cannot be read
        """
        if self.data is not None:
            return self.data
        if self.path is None:
            raise EncodingError("Image has neither data nor a path.", image_name=self.name)
        try:
            return await asyncio.to_thread(self.path.read_bytes)
        except OSError as e:
            raise EncodingError(f"Cannot read image file: {e}", image_name=self.name) from e

    async def read_prefix(self, size: int) -> bytes:
        """
        Return at most the first size bytes, reading no more of the file than that.

        Raises:
            EncodingError: If there is no payload or the file cannot be read
        """
        if self.data is not None:
            return self.data[:size]
        if self.path is None:
            raise EncodingError("Image has neither data nor a path.", image_name=self.name)
        path = self.path

        def _read() -> bytes:
            with path.open("rb") as f:
                return f.read(size)

        try:
            return await asyncio.to_thread(_read)
        except OSError as e:
            raise EncodingError(f"Cannot read image file: {e}", image_name=self.name) from e


@dataclass(frozen=True)
class AnalysisRequest:
    """One (image, prompt) pair sent for analysis."""

    image: ChartImage
    prompt: str
