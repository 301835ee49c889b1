"""Common type definitions for the blobsource library."""

# Type aliases for clarity and documentation
AggregateId = str
BlobType = str
Tags = dict[str, str]

# Position of an event within one aggregate's stream (1-based)
Sequence = int
