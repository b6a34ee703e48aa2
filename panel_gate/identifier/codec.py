from __future__ import annotations

"""Unit identifier codec.

Identifier layout (data-matrix code printed on each board):

    VLLDDD xxxxxxx *
    ^^^^^^ ^^^^^^^ ^
    |      |       +-- optional trailing characters, kept as-is
    |      +---------- 7-digit per-panel sequence number (offset 6..12)
    +----------------- 6-char prefix, opaque to the gate

Boards on one panel carry consecutive sequence numbers, so the siblings of a
scanned board are obtained by adding 1..n-1 to its sequence field.
"""

__all__ = [
    "SEQUENCE_OFFSET",
    "SEQUENCE_WIDTH",
    "IdentifierError",
    "MalformedIdentifierError",
    "SequenceOverflowError",
    "parse_sequence",
    "derive_siblings",
]

SEQUENCE_OFFSET = 6
SEQUENCE_WIDTH = 7
SEQUENCE_LIMIT = 10 ** SEQUENCE_WIDTH

_DIGITS = frozenset("0123456789")


class IdentifierError(Exception):
    """Base class for structurally invalid unit identifiers."""


class MalformedIdentifierError(IdentifierError):
    """Raised when the 7-digit sequence field is absent, short or non-numeric."""


class SequenceOverflowError(IdentifierError):
    """Raised when a sibling sequence number does not fit in 7 digits."""


def parse_sequence(serial: str) -> int:
    """Return the numeric value of the sequence field of ``serial``."""
    field = serial[SEQUENCE_OFFSET:SEQUENCE_OFFSET + SEQUENCE_WIDTH]
    # str.isdigit() は全角数字等も True になるため ASCII のみ許可
    if len(field) != SEQUENCE_WIDTH or not set(field) <= _DIGITS:
        raise MalformedIdentifierError(
            f"cannot parse sequence number at offset {SEQUENCE_OFFSET} of '{serial}'"
        )
    return int(field)


def _splice(serial: str, sequence: int) -> str:
    end = SEQUENCE_OFFSET + SEQUENCE_WIDTH
    return f"{serial[:SEQUENCE_OFFSET]}{sequence:0{SEQUENCE_WIDTH}d}{serial[end:]}"


def derive_siblings(serial: str, count: int = 1) -> list[str]:
    """Expand a scanned identifier into the identifiers of all boards on its panel.

    Parameters
    ----------
    serial: scanned identifier; always element 0 of the result
    count: boards on panel (>= 1)

    Returns
    -------
    list of ``count`` identifiers; element i has sequence number ``base + i``.

    Raises
    ------
    MalformedIdentifierError: sequence field missing or non-numeric
    SequenceOverflowError: ``base + i`` needs more than 7 digits
    ValueError: ``count`` < 1
    """
    if count < 1:
        raise ValueError(f"panel size must be >= 1, got {count}")

    base = parse_sequence(serial)
    siblings = [serial]
    if count == 1:
        return siblings

    for i in range(1, count):
        sequence = base + i
        if sequence >= SEQUENCE_LIMIT:
            raise SequenceOverflowError(
                f"sequence number {base} + {i} does not fit in {SEQUENCE_WIDTH} digits"
            )
        siblings.append(_splice(serial, sequence))
    return siblings
