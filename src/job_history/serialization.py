"""
Argument codec and compression helpers.

Job arguments are stored as a single JSON string in the ``args`` field of a
job record. Classes that ship large payloads may wrap their arguments in a
compressed ``{"payload": ...}`` envelope; the helpers here produce and unwrap
that envelope.
"""

from __future__ import annotations

import base64
import binascii
import zlib
from typing import Any

import orjson

COMPRESSED_KEY = "payload"


def encode_args(args: list[Any] | tuple[Any, ...]) -> str:
    """Serialize an argument list for storage."""
    return orjson.dumps(list(args), option=orjson.OPT_NON_STR_KEYS).decode("utf-8")


def decode_args(data: str | bytes | None) -> list[Any]:
    """
    Deserialize a stored argument list.

    Missing or garbled data decodes to an empty list; partially written
    records are expected and must not break readers.
    """
    if not data:
        return []
    try:
        value = orjson.loads(data)
    except orjson.JSONDecodeError:
        return []
    if isinstance(value, list):
        return value
    return [value]


def compress_args(args: list[Any] | tuple[Any, ...], level: int = 6) -> list[dict[str, str]]:
    """Wrap ``args`` into a single compressed envelope argument."""
    raw = orjson.dumps(list(args))
    packed = base64.b64encode(zlib.compress(raw, level=level)).decode("ascii")
    return [{COMPRESSED_KEY: packed}]


def is_compressed(args: list[Any]) -> bool:
    """True when ``args`` is a single compressed envelope."""
    return (
        len(args) == 1
        and isinstance(args[0], dict)
        and set(args[0]) == {COMPRESSED_KEY}
        and isinstance(args[0][COMPRESSED_KEY], str)
    )


def uncompress_payload(payload: str | bytes | None) -> list[Any]:
    """Inflate an envelope payload back into the original argument list."""
    if not isinstance(payload, (str, bytes)):
        return []
    try:
        raw = zlib.decompress(base64.b64decode(payload))
    except (binascii.Error, zlib.error, ValueError):
        return []
    return decode_args(raw)


__all__ = [
    "COMPRESSED_KEY",
    "encode_args",
    "decode_args",
    "compress_args",
    "is_compressed",
    "uncompress_payload",
]
