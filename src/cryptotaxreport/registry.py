from __future__ import annotations

from typing import Iterator, List, Tuple

from .schemas import Operation


class OperationRegistry:
    """
    Ordered, append-only list of validated operations.

    Order is insertion order; the report layout does not require sorting.
    No locking: callers sharing an instance across threads must serialize
    register/all themselves.
    """

    def __init__(self) -> None:
        self._operations: List[Operation] = []

    def register(self, op: Operation) -> int:
        """Append `op` and return its record id (its 0-based position)."""
        self._operations.append(op)
        return len(self._operations) - 1

    def all(self) -> Tuple[Operation, ...]:
        """Read-only snapshot for export."""
        return tuple(self._operations)

    def __len__(self) -> int:
        return len(self._operations)

    def __iter__(self) -> Iterator[Operation]:
        return iter(self.all())
