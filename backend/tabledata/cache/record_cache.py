"""
Record Cache - In-memory store for loaded record sets with hit/miss tracking

Entries live until removed or the cache is cleared; there is no eviction.
Statistics are snapshots built on demand from the stored entries and the
cumulative lookup counters.
"""
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Iterator, Optional

from loguru import logger
from pydantic import BaseModel, Field

# Heuristic sizing: one unit per scalar entry, one per collection element
ENTRY_SIZE_ESTIMATE = 100

_MISSING = object()


@dataclass
class CacheEntry:
    """One stored value and when/how fast it was produced."""
    key: Hashable
    value: Any
    created_at: float = field(default_factory=time.time)
    load_duration: Optional[float] = None


class CacheStatistics(BaseModel):
    """Snapshot of cache usage."""
    total_entries: int = Field(0, ge=0, description="Number of stored entries")
    total_hits: int = Field(0, ge=0, description="Lookups that found an entry since the last clear")
    total_misses: int = Field(0, ge=0, description="Lookups that found nothing since the last clear")
    hit_rate: float = Field(0.0, ge=0.0, le=1.0, description="hits / (hits + misses), 0 without lookups")
    memory_usage_bytes: int = Field(0, ge=0, description="Approximate size of the stored values")
    average_load_time: float = Field(0.0, ge=0.0, description="Mean load duration in seconds")
    type_counts: Dict[str, int] = Field(default_factory=dict, description="Entries per value type")

    def get_summary(self) -> str:
        """Human readable one-block summary."""
        lines = [
            f"Entries: {self.total_entries}",
            f"Hits: {self.total_hits}",
            f"Misses: {self.total_misses}",
            f"Hit Rate: {self.hit_rate:.1%}",
            f"Memory: {self.memory_usage_bytes / 1024:.1f} KB",
            f"Avg Load Time: {self.average_load_time * 1000:.1f} ms",
        ]
        for type_label, count in sorted(self.type_counts.items()):
            lines.append(f"  {type_label}: {count}")
        return "\n".join(lines)


def _is_collection(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset, dict))


def value_type_name(value: Any) -> str:
    """Type label for the histogram; sequences report their first element's type."""
    if isinstance(value, (list, tuple)) and value:
        return f"{type(value).__name__}[{type(value[0]).__name__}]"
    return type(value).__name__


class RecordCache:
    """
    Key/value store for loaded record sets.

    Single-owner: callers that share one across threads must serialize
    access themselves.
    """

    def __init__(self):
        self._entries: Dict[Hashable, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def set(self, key: Hashable, value: Any, load_duration: Optional[float] = None) -> None:
        """Store a value, replacing any previous entry for the key."""
        self._entries[key] = CacheEntry(key=key, value=value, load_duration=load_duration)

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Look up a value, counting a hit or a miss."""
        entry = self._entries.get(key, _MISSING)
        if entry is _MISSING:
            self._misses += 1
            return default
        self._hits += 1
        return entry.value

    def contains(self, key: Hashable) -> bool:
        """Presence check; does not touch the counters."""
        return key in self._entries

    def __contains__(self, key: Hashable) -> bool:
        return self.contains(key)

    def __len__(self):
        return len(self._entries)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(list(self._entries))

    def entry(self, key: Hashable) -> Optional[CacheEntry]:
        """Raw entry with its metadata, without counting a lookup."""
        return self._entries.get(key)

    def remove(self, key: Hashable) -> bool:
        """Remove an entry. Returns True if one existed."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Drop every entry and reset the counters."""
        count = len(self._entries)
        self._entries.clear()
        self._hits = 0
        self._misses = 0
        logger.debug(f"Record cache cleared ({count} entries)")

    def statistics(self) -> CacheStatistics:
        lookups = self._hits + self._misses
        durations = [e.load_duration for e in self._entries.values() if e.load_duration is not None]

        memory = 0
        type_counts: Dict[str, int] = {}
        for entry in self._entries.values():
            value = entry.value
            memory += ENTRY_SIZE_ESTIMATE * (len(value) if _is_collection(value) else 1)
            label = value_type_name(value)
            type_counts[label] = type_counts.get(label, 0) + 1

        return CacheStatistics(
            total_entries=len(self._entries),
            total_hits=self._hits,
            total_misses=self._misses,
            hit_rate=self._hits / lookups if lookups else 0.0,
            memory_usage_bytes=memory,
            average_load_time=sum(durations) / len(durations) if durations else 0.0,
            type_counts=type_counts,
        )
