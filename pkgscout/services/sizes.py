"""Size measurements for bundled code.

``compressed_size`` streams the code through a compressor and adds up the
chunk lengths.  Without a compressor it falls back to a fixed estimate of 70%
of the raw size, rounded with Python's ``round`` so the figure is exactly
reproducible.
"""

from __future__ import annotations

import asyncio
import logging
import tempfile
import time
import zlib
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)

FALLBACK_RATIO = 0.7
_CHUNK_SIZE = 64 * 1024


class Compressor(Protocol):
    def push(self, data: bytes) -> bytes: ...

    def finish(self) -> bytes: ...


class GzipCompressor:
    """Streaming gzip (RFC 1952 framing) on top of ``zlib.compressobj``."""

    def __init__(self, level: int = zlib.Z_DEFAULT_COMPRESSION) -> None:
        # wbits=31 selects the gzip container rather than raw zlib.
        self._stream = zlib.compressobj(level, zlib.DEFLATED, 31)

    def push(self, data: bytes) -> bytes:
        return self._stream.compress(data)

    def finish(self) -> bytes:
        return self._stream.flush()


type CompressorFactory = Callable[[], Compressor]

DEFAULT_COMPRESSOR: CompressorFactory = GzipCompressor


def byte_size(code: str) -> int:
    return len(code.encode("utf-8"))


def estimated_compressed_size(code: str) -> int:
    return round(byte_size(code) * FALLBACK_RATIO)


def compressed_size(code: str, compressor: CompressorFactory | None = DEFAULT_COMPRESSOR) -> int:
    if compressor is None:
        return estimated_compressed_size(code)

    data = code.encode("utf-8")
    stream = compressor()
    total = 0
    for offset in range(0, len(data), _CHUNK_SIZE):
        total += len(stream.push(data[offset : offset + _CHUNK_SIZE]))
    total += len(stream.finish())
    return total


async def parse_time(code: str, runtime: str = "node") -> float:
    """Milliseconds spent loading *code* as an ES module in a fresh runtime process.

    This executes the fetched code with the privileges of the current user.
    Only call it for packages you would be willing to run, and only as an
    explicit debug measurement.  Evaluation errors and a missing runtime do
    not abort the measurement: the time spent until the failure is returned.
    """
    start = time.perf_counter()
    try:
        with tempfile.TemporaryDirectory(prefix="pkgscout-parse-") as workdir:
            process = await asyncio.create_subprocess_exec(
                runtime,
                "--input-type=module",
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
                cwd=workdir,
            )
            _, stderr = await process.communicate(code.encode("utf-8"))
            if process.returncode:
                logger.debug("Evaluation exited with %s: %s", process.returncode, stderr.decode("utf-8", "replace"))
    except OSError as exc:
        logger.warning("Cannot start %s for parse-time measurement: %s", runtime, exc)
    return (time.perf_counter() - start) * 1000
