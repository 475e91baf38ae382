"""Explorer client, payload decoding and bundle persistence."""

from provcheck.explorer.client import ExplorerClient, RawSourcePayload
from provcheck.explorer.decode import DecodedBundle, DecodeError, decode_bundle
from provcheck.explorer.persist import save_bundle

__all__ = [
    "DecodeError",
    "DecodedBundle",
    "ExplorerClient",
    "RawSourcePayload",
    "decode_bundle",
    "save_bundle",
]
