"""Release package for encoding and storing Helm v2 release records."""

from .codec import ReleaseCodecError, decode_release, encode_release
from .descriptor import ReleaseDescriptor
from .recorder import ReleaseExistsError, load, record, release_key
from .schema import StatusCode

__all__ = [
    "ReleaseCodecError",
    "ReleaseDescriptor",
    "ReleaseExistsError",
    "StatusCode",
    "decode_release",
    "encode_release",
    "load",
    "record",
    "release_key",
]
