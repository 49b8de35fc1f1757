"""
Station scheduling state.

Everything a station mutates while scheduling lives in one ``StationState``
value. Forking a simulation is a ``copy()`` of that value; no container is
shared between the original and the copy.
"""

from dataclasses import dataclass, field
from typing import Any

from .draw_pool import DrawPoolManager
from .generator import SeededGenerator
from .models import Category, SegmentInfo


@dataclass
class StationState:
    """Mutable scheduling state for one station.

    Attributes:
        generator: Seeded generator, index advances once per random draw
        draw_pools: Anti-repeat pools keyed by list identifier
        history: Most recent segments, newest first
        accumulated_time: Seconds scheduled since the epoch
        segment_index: Number of segments selected
        track_index: Number of MUSIC segments selected
    """

    generator: SeededGenerator
    draw_pools: DrawPoolManager = field(default_factory=DrawPoolManager)
    history: list[SegmentInfo] = field(default_factory=list)
    accumulated_time: float = 0.0
    segment_index: int = 0
    track_index: int = 0

    @classmethod
    def initial(cls, seed: int) -> "StationState":
        return cls(generator=SeededGenerator(seed=seed))

    def copy(self) -> "StationState":
        """Deep copy of every mutable container."""
        return StationState(
            generator=self.generator.clone(),
            draw_pools=self.draw_pools.clone(),
            history=list(self.history),
            accumulated_time=self.accumulated_time,
            segment_index=self.segment_index,
            track_index=self.track_index,
        )

    def register(self, info: SegmentInfo, history_limit: int) -> None:
        """Record ``info`` as the newest segment and advance the counters."""
        self.history.insert(0, info)
        del self.history[history_limit:]

        self.segment_index += 1
        if info.category == Category.MUSIC:
            self.track_index += 1
        self.accumulated_time += info.effective_duration

    def to_dict(self) -> dict[str, Any]:
        """Plain summary of the state (for logging and CLI output)."""
        return {
            "seed": self.generator.seed,
            "generator_index": self.generator.index,
            "accumulated_time": self.accumulated_time,
            "segment_index": self.segment_index,
            "track_index": self.track_index,
            "history": [info.path for info in self.history],
            "draw_pools": {
                list_id: {
                    "available": list(pool.available),
                    "discarded": list(pool.discarded),
                }
                for list_id, pool in self.draw_pools.pools.items()
            },
        }
