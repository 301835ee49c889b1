"""
Serialization utilities for blob event envelopes.

Example:
    >>> from blobsource.serialization import encode_envelope, decode_envelope
    >>> raw = encode_envelope(envelope)
    >>> decode_envelope(raw) == envelope
    True
"""

from blobsource.serialization.json import (
    BlobSourceJSONEncoder,
    decode_envelope,
    encode_envelope,
    envelope_to_record,
    json_dumps,
    json_loads,
    record_to_envelope,
)

__all__ = [
    "BlobSourceJSONEncoder",
    "json_dumps",
    "json_loads",
    "encode_envelope",
    "decode_envelope",
    "envelope_to_record",
    "record_to_envelope",
]
