"""
Relationship Context - Per-call state for one relationship resolution pass
"""
from typing import Any, Dict, List, Optional

DEFAULT_MAX_DEPTH = 5


class RelationshipContext:
    """
    Cycle guard and loaded-set map for one top-level resolve call.

    The stack holds the identifiers of the target tables currently being
    resolved; an identifier never appears on it twice. The loaded-data map
    lets every relationship in the pass that targets the same record type
    share one loaded list.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH):
        if max_depth < 1:
            raise ValueError(f"max_depth must be >= 1, got {max_depth}")
        self.max_depth = max_depth
        self.stack: List[str] = []
        self.loaded_data: Dict[type, List[Any]] = {}

    @property
    def depth(self) -> int:
        return len(self.stack)

    @property
    def at_max_depth(self) -> bool:
        return len(self.stack) >= self.max_depth

    def is_circular(self, identifier: str) -> bool:
        return identifier in self.stack

    def push(self, identifier: str) -> None:
        if identifier in self.stack:
            raise ValueError(f"'{identifier}' is already being resolved")
        self.stack.append(identifier)

    def pop(self) -> str:
        return self.stack.pop()

    def path(self, identifier: Optional[str] = None) -> str:
        """Readable resolution path, optionally extended by one identifier."""
        chain = self.stack + [identifier] if identifier else self.stack
        return ' -> '.join(chain)

    def get_loaded(self, record_type: type) -> Optional[List[Any]]:
        return self.loaded_data.get(record_type)

    def store_loaded(self, record_type: type, records: List[Any]) -> None:
        self.loaded_data[record_type] = records
