# ============================================================================
# ARCHIVE ENTRY STREAM
# ============================================================================
# STATUS: Core - streaming zip traversal
# PURPOSE: Turn a chunked byte stream into a lazy, forward-only sequence of
#          archive entries without holding the archive in memory
# EXPORTS: ArchiveEntry, ArchiveEntryStream
# DEPENDENCIES: zipfile, tempfile, asyncio
# ============================================================================
"""
Archive Entry Stream

Zip keeps its directory at the end of the file, so entries cannot be
located until the last byte has arrived. The stream therefore spools the
compressed download chunk by chunk into a SpooledTemporaryFile (memory up to
a threshold, local disk beyond it) and only then walks the central
directory. Entry content is decompressed one entry at a time, when the
consumer asks for it, so peak memory is one decompressed entry plus the
spool threshold.

Usage:
    async with ArchiveEntryStream(file_entity.get_stream()) as archive:
        async for entry in archive:
            if entry.is_directory:
                continue
            payload = await entry.read()

The sequence is not restartable: iterate it once, or open a new stream.
"""

import asyncio
import tempfile
import zipfile
import zlib
from dataclasses import dataclass, field
from functools import partial
from typing import AsyncIterable, AsyncIterator, Callable, Optional

from config.defaults import LoadDefaults
from exceptions import ArchiveError, StorageError
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "ArchiveEntryStream")


@dataclass(frozen=True)
class ArchiveEntry:
    """One file or directory marker inside the archive."""
    path: str
    is_directory: bool
    size: int = 0
    _reader: Callable[[], bytes] = field(default=lambda: b"", repr=False, compare=False)

    async def read(self) -> bytes:
        """Full decompressed bytes of this entry (decompressed off the event loop)."""
        return await asyncio.to_thread(self._reader)


class ArchiveEntryStream:
    """
    Lazy, forward-only view over a zip archive arriving as byte chunks.

    Async context manager: entering spools the byte source and reads the
    central directory; leaving closes the zip and discards the spool.
    """

    def __init__(
        self,
        chunks: AsyncIterable[bytes],
        spool_max_memory: int = LoadDefaults.SPOOL_MAX_MEMORY_BYTES,
    ):
        self._chunks = chunks
        self._spool_max_memory = spool_max_memory
        self._spool: Optional[tempfile.SpooledTemporaryFile] = None
        self._zip: Optional[zipfile.ZipFile] = None
        self._consumed = False
        self.bytes_spooled = 0

    async def __aenter__(self) -> "ArchiveEntryStream":
        try:
            await self._spool_source()
            self._open_zip()
        except BaseException:
            self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    async def _spool_source(self) -> None:
        self._spool = tempfile.SpooledTemporaryFile(max_size=self._spool_max_memory)
        try:
            async for chunk in self._chunks:
                self._spool.write(chunk)
                self.bytes_spooled += len(chunk)
        except StorageError:
            raise
        except (OSError, asyncio.IncompleteReadError) as e:
            raise StorageError(f"Archive download interrupted after {self.bytes_spooled} bytes: {e}") from e

        self._spool.seek(0)
        logger.debug(
            f"Spooled {self.bytes_spooled} bytes "
            f"({'disk' if self.bytes_spooled > self._spool_max_memory else 'memory'})"
        )

    def _open_zip(self) -> None:
        try:
            self._zip = zipfile.ZipFile(self._spool)
        except zipfile.BadZipFile as e:
            raise ArchiveError(f"Not a valid zip archive ({self.bytes_spooled} bytes): {e}") from e

    def _read_member(self, info: zipfile.ZipInfo) -> bytes:
        try:
            return self._zip.read(info)
        except (zipfile.BadZipFile, zlib.error, EOFError) as e:
            raise ArchiveError(f"Corrupt archive entry '{info.filename}': {e}") from e
        except (RuntimeError, NotImplementedError, ValueError) as e:
            # Encrypted members, unsupported compression methods or flag bits
            raise ArchiveError(f"Unreadable archive entry '{info.filename}': {e}") from e

    def __aiter__(self) -> AsyncIterator[ArchiveEntry]:
        if self._zip is None:
            raise RuntimeError("ArchiveEntryStream must be entered before iterating")
        if self._consumed:
            raise RuntimeError("ArchiveEntryStream is forward-only; open a new stream to iterate again")
        self._consumed = True
        return self._iter_entries()

    async def _iter_entries(self) -> AsyncIterator[ArchiveEntry]:
        for info in self._zip.infolist():
            yield ArchiveEntry(
                path=info.filename,
                is_directory=info.is_dir(),
                size=info.file_size,
                _reader=partial(self._read_member, info),
            )

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None
        if self._spool is not None:
            self._spool.close()
            self._spool = None
