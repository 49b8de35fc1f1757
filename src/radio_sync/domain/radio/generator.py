"""
Deterministic pseudo-random generator.

Every random decision a station makes is derived from ``generate(seed, index)``,
so two clients holding the same seed and index always agree on the outcome.
"""

from dataclasses import dataclass

UINT32_MASK = 0xFFFFFFFF
MIX_CONSTANT = 0x45D9F3B


def generate(seed: int, index: int) -> int:
    """Hash ``(seed, index)`` into an unsigned 32-bit integer.

    Args:
        seed: Sequence seed (same seed -> same sequence)
        index: Position within the sequence

    Returns:
        Value from 0 to 0xFFFFFFFF
    """
    value = (seed ^ index) & UINT32_MASK
    value = ((value ^ (value >> 21)) * MIX_CONSTANT) & UINT32_MASK
    value = ((value ^ (value >> 15)) * MIX_CONSTANT) & UINT32_MASK
    value = value ^ (value >> 13)
    return value & UINT32_MASK


def to_float(value: int) -> float:
    """Map a generated value onto [0, 1]."""
    return value / UINT32_MASK


@dataclass
class SeededGenerator:
    """Indexed view over the ``generate`` sequence for one seed.

    The index only moves forward; ``next()`` consumes exactly one value.
    """

    seed: int
    index: int = 0

    def generate(self) -> int:
        """Value at the current index, without consuming it."""
        return generate(self.seed, self.index)

    def next(self) -> int:
        """Return the value at the current index and advance the index by one."""
        value = self.generate()
        self.index += 1
        return value

    def next_float(self) -> float:
        return to_float(self.next())

    def clone(self) -> "SeededGenerator":
        """Fork the sequence; the copy shares history up to this point only."""
        return SeededGenerator(seed=self.seed, index=self.index)
