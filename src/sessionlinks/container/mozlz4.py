"""Decoder for Firefox's mozLz4 session-store container.

Layout of a container::

    8 bytes   magic b"mozLz40\\0"
    4 bytes   uncompressed size, little endian
    rest      one raw LZ4 block (no frame header, no checksum)
"""

from __future__ import annotations

import logging

import lz4.block

from sessionlinks.errors import BadMagicError, CorruptDataError, SizeLimitExceededError

LOGGER = logging.getLogger(__name__)

MAGIC = b"mozLz40\0"
HEADER_SIZE = len(MAGIC) + 4
# LZ4 cannot expand more than ~255x, anything beyond is a forged size.
DEFAULT_MAX_RATIO = 255


def size_limit(compressed_size: int, max_ratio: int = DEFAULT_MAX_RATIO) -> int:
    return max(compressed_size, 1) * max_ratio


def decode(raw: bytes, *, max_ratio: int = DEFAULT_MAX_RATIO) -> bytes:
    """Strip the container header and decompress the payload.

    The declared size is checked against ``max_ratio`` before the block is
    handed to the decompressor, so the output buffer never exceeds the limit.
    """
    if len(raw) < len(MAGIC) or not raw.startswith(MAGIC):
        raise BadMagicError("input is not a mozLz4 container (bad signature)")
    if len(raw) < HEADER_SIZE:
        raise CorruptDataError("container header is truncated")

    declared = int.from_bytes(raw[len(MAGIC) : HEADER_SIZE], "little")
    block = raw[HEADER_SIZE:]
    limit = size_limit(len(block), max_ratio)
    if declared > limit:
        raise SizeLimitExceededError(
            f"declared size {declared} exceeds limit of {limit} bytes "
            f"for a {len(block)} byte block"
        )

    LOGGER.debug("Decoding %d byte block, %d bytes declared", len(block), declared)
    try:
        data = lz4.block.decompress(block, uncompressed_size=declared)
    except lz4.block.LZ4BlockError as exc:
        raise CorruptDataError(f"corrupt LZ4 block: {exc}") from exc
    if len(data) != declared:
        raise CorruptDataError(f"decoded {len(data)} bytes but header declares {declared}")
    return data


def encode(data: bytes) -> bytes:
    """Build a mozLz4 container around ``data``."""
    # store_size writes the 4-byte little-endian size the container expects.
    return MAGIC + lz4.block.compress(data, store_size=True)


def is_container(raw: bytes) -> bool:
    return raw.startswith(MAGIC)
