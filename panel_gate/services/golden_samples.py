from __future__ import annotations

import logging
from collections.abc import Collection
from pathlib import Path

"""Golden sample exemption list.

The station keeps a flat text file next to its config, one identifier per line.
Golden samples are reference boards that are run through the tester on purpose,
so they are never subject to the retest limits.
"""

__all__ = [
    "load_golden_samples",
    "is_golden_sample",
]

logger = logging.getLogger(__name__)


def load_golden_samples(path: Path) -> frozenset[str]:
    """Load the exemption list.

    A missing or unreadable file means "no exemptions"; it is not an error.
    Lines are taken verbatim (no trimming, no case folding); a leading BOM is
    dropped, as for the config file.
    """
    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"golden samples not loaded ({path}): {e}")
        return frozenset()
    samples = frozenset(text.splitlines())
    logger.debug(f"golden samples loaded: {len(samples)} entries from {path}")
    return samples


def is_golden_sample(serial: str, samples: Collection[str]) -> bool:
    return serial in samples
