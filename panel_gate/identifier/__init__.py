from .codec import (
    IdentifierError,
    MalformedIdentifierError,
    SequenceOverflowError,
    derive_siblings,
    parse_sequence,
)

__all__ = [
    "IdentifierError",
    "MalformedIdentifierError",
    "SequenceOverflowError",
    "derive_siblings",
    "parse_sequence",
]
