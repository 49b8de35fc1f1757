"""
Anti-repeat index selection.

An ``IndexDrawPool`` hands out indexes into a list so that the same index
never comes back within ``dont_repeat_for`` draws. ``DrawPoolManager`` keeps
one pool per named list ("track", "id", "adverts", ...).
"""

from collections import deque
from typing import Optional

from loguru import logger

DEFAULT_DONT_REPEAT_FOR = 8


class IndexDrawPool:
    """Draw pool over the indexes ``0..source_size-1``.

    Args:
        source_size: Length of the list the indexes point into
        dont_repeat_for: Number of consecutive draws an index stays excluded
    """

    def __init__(self, source_size: int, dont_repeat_for: int = DEFAULT_DONT_REPEAT_FOR):
        self.available: list[int] = list(range(source_size))
        self.discarded: deque[int] = deque()
        self.dont_repeat_for = dont_repeat_for

    def next(self, random_integer: int) -> Optional[int]:
        """Draw an index using ``random_integer`` as the source of randomness.

        Args:
            random_integer: Non-negative random value (usually from the generator)

        Returns:
            Index not drawn in the last ``dont_repeat_for`` draws, or None if
            the pool is exhausted
        """
        if not self.available:
            return None

        selected = self.available.pop(random_integer % len(self.available))
        self.discarded.append(selected)

        if len(self.discarded) > self.dont_repeat_for:
            self.available.append(self.discarded.popleft())

        return selected

    def clone(self) -> "IndexDrawPool":
        cloned = IndexDrawPool(0, self.dont_repeat_for)
        cloned.available = list(self.available)
        cloned.discarded = deque(self.discarded)
        return cloned

    def __repr__(self) -> str:
        return (
            f"IndexDrawPool(available={self.available}, "
            f"discarded={list(self.discarded)}, dont_repeat_for={self.dont_repeat_for})"
        )


class DrawPoolManager:
    """Registry of draw pools keyed by list identifier."""

    def __init__(self) -> None:
        self.pools: dict[str, IndexDrawPool] = {}

    def next_unique_index(
        self,
        list_id: str,
        source_size: int,
        random_integer: int,
        dont_repeat_for: int = DEFAULT_DONT_REPEAT_FOR,
    ) -> Optional[int]:
        """Draw an index for ``list_id``, creating its pool on first use.

        ``dont_repeat_for`` is clamped to ``source_size - 1`` when the pool is
        created so a small list can never be drained permanently.

        Args:
            list_id: Identifier of the list (e.g. "track", "id", "mono_solo")
            source_size: Length of that list
            random_integer: Random value used to pick from the available indexes
            dont_repeat_for: Requested anti-repeat window

        Returns:
            Index from 0 to ``source_size - 1``, or None for an empty list
        """
        pool = self.pools.get(list_id)
        if pool is None:
            window = max(0, min(dont_repeat_for, source_size - 1))
            pool = IndexDrawPool(source_size, window)
            self.pools[list_id] = pool
            logger.debug(
                f"Created draw pool '{list_id}' (size={source_size}, dont_repeat_for={window})"
            )

        return pool.next(random_integer)

    def clone(self) -> "DrawPoolManager":
        cloned = DrawPoolManager()
        cloned.pools = {list_id: pool.clone() for list_id, pool in self.pools.items()}
        return cloned

    def __contains__(self, list_id: str) -> bool:
        return list_id in self.pools
