"""CRC32 content hashes."""

from __future__ import annotations

import zlib


def crc32_hex_hash(content: str) -> str:
    """Lowercase hexadecimal CRC32 of the UTF-8 encoded content."""
    return f"{zlib.crc32(content.encode('utf-8')) & 0xFFFFFFFF:08x}"
