"""
Shannon entropy, computed incrementally.

High entropy is a cheap proxy for packed or encrypted payloads (the
bun_environment.js family ships as a multi-megabyte blob close to 8 bits/byte).
"""
import math
from collections import Counter


class EntropyCalculator:
    """Accumulate symbol frequencies over chunks; H = -sum(p * log2(p)).

    Bytes count per byte value, str counts per character, so the same
    instance should not be fed both.
    """

    def __init__(self):
        self.counts = Counter()
        self.total = 0

    def update(self, chunk):
        if not chunk:
            return self
        self.counts.update(chunk)
        self.total += len(chunk)
        return self

    def digest(self) -> float:
        if not self.total:
            return 0.0
        total = self.total
        return -sum((c / total) * math.log2(c / total) for c in self.counts.values())


def calculate_entropy(data) -> float:
    return EntropyCalculator().update(data).digest()


def is_high_entropy(text: str, threshold: float = 5.2, min_length: int = 50) -> bool:
    # short strings give statistically meaningless values
    if not text or len(text) < min_length:
        return False
    return calculate_entropy(text) > threshold
