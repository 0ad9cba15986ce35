"""
String-seeded pseudo-randomness for reproducible visual jitter.

The same seed string always maps to the same value, across calls and
across process restarts. NOT cryptographically secure; only used to vary
sizes, offsets and tilts in a stable way.
"""

import math

_MASK_32 = 0xFFFFFFFF


def hash_string(text: str) -> int:
    """
    Polynomial rolling hash (``h * 31 + c``) wrapped to a signed 32-bit int.

    ``c`` runs over UTF-16 code units, so a character outside the BMP
    (e.g. an emoji) contributes its two surrogates, matching the browser
    overlay's ``charCodeAt`` seeds.
    """
    data = text.encode("utf-16-le", "surrogatepass")
    h = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = (h * 31 + unit) & _MASK_32
    if h & 0x80000000:
        h -= 0x100000000
    return h


def random_from_hash(seed: str, lo: float = 0.0, hi: float = 1.0) -> float:
    """Map *seed* to a float in ``[lo, hi)``."""
    fraction = abs(math.sin(hash_string(seed)) * 10000) % 1
    return lo + (hi - lo) * fraction


def item_seed(item_id, index: int) -> str:
    """Stable per-item seed: identity plus position in the list."""
    return f"{item_id}-{index}"


def seed_for(seed: str, *tags) -> str:
    """Derive a purpose-specific seed, e.g. ``seed_for(s, "rotation", "mag")``."""
    return "-".join([seed, *(str(t) for t in tags)])
