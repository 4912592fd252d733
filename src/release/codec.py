from __future__ import annotations

import base64
import binascii
import gzip
import zlib

from google.protobuf.message import DecodeError

from .descriptor import ReleaseDescriptor
from .schema import Release

_GZIP_MAGIC = b"\x1f\x8b\x08"


class ReleaseCodecError(Exception):
    """Raised when a stored release payload cannot be decoded."""


def encode_release(descriptor: ReleaseDescriptor) -> str:
    """Encode a release as base64 text of the gzip-compressed protobuf bytes."""
    payload = descriptor.to_proto().SerializeToString()
    compressed = gzip.compress(payload, compresslevel=9, mtime=0)
    return base64.b64encode(compressed).decode("ascii")


def decode_release(text: str) -> ReleaseDescriptor:
    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ReleaseCodecError(f"release payload is not base64: {exc}") from exc
    # Uncompressed payloads written by older releases are accepted as-is.
    if raw[:3] == _GZIP_MAGIC:
        try:
            raw = gzip.decompress(raw)
        except (OSError, EOFError, zlib.error) as exc:
            raise ReleaseCodecError(f"release payload is not valid gzip: {exc}") from exc
    message = Release()
    try:
        message.ParseFromString(raw)
    except DecodeError as exc:
        raise ReleaseCodecError(f"release payload is not a release message: {exc}") from exc
    return ReleaseDescriptor.from_proto(message)


__all__ = ["ReleaseCodecError", "decode_release", "encode_release"]
