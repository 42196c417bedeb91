"""Word information content lookup for frequency-driven pacing.

WHY: The word_frequency timing algorithm slows down for surprising
words and speeds through filler. It needs a stable number per word that
grows as the word gets rarer: Shannon information, in bits.

HOW: A bundled JSON table lists common English words with their
approximate occurrences per million words. Information is
-log2(occurrences / 1,000,000), clamped to [INFO_LOW, INFO_HIGH]. The
table is loaded once and cached for the life of the process.

RULES:
- Lookup is case-insensitive
- Unknown words resolve to INFO_HIGH (treated as rare)
- Results are always within [INFO_LOW, INFO_HIGH]
- Deterministic: same word, same value
"""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Dict, Optional

INFO_LOW = 4.0
"""Bits for the most common words ("the" is ~4.2)."""

INFO_HIGH = 18.0
"""Bits for rare and unknown words (~4 occurrences per billion)."""

_DATA_PATH = Path(__file__).resolve().parent.parent / "data" / "word_frequencies.json"

_CACHED_TABLE: Optional[Dict[str, float]] = None


def _get_table() -> Dict[str, float]:
    """Load and cache the word frequency table."""
    global _CACHED_TABLE
    if _CACHED_TABLE is None:
        with open(_DATA_PATH, encoding="utf-8") as f:
            data = json.load(f)
        _CACHED_TABLE = {w.lower(): float(n) for w, n in data["words"].items()}
    return _CACHED_TABLE


def get_word_information(word: str) -> float:
    """Return the information content of ``word`` in bits."""
    per_million = _get_table().get(word.lower())
    if not per_million or per_million <= 0:
        return INFO_HIGH
    bits = -math.log2(per_million / 1_000_000)
    return min(INFO_HIGH, max(INFO_LOW, bits))
