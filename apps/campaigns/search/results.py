from dataclasses import dataclass, field
from enum import Enum
from math import ceil
from typing import List, Optional, Tuple


class DegradedReason(Enum):
    INDEX_EMPTY = "index_empty"
    INDEX_UNREACHABLE = "index_unreachable"
    QUERY_FAILED = "query_failed"
    CIRCUIT_OPEN = "circuit_open"
    # The index is switched off (database driver)
    BYPASSED = "bypassed"


@dataclass(frozen=True)
class SearchOutcome:
    """Ordered ids from the index, or an empty result with the reason it is empty."""

    ids: Tuple[int, ...] = ()
    total: int = 0
    degraded_reason: Optional[DegradedReason] = None

    @property
    def degraded(self) -> bool:
        return self.degraded_reason is not None

    @classmethod
    def empty(cls, reason=None):
        return cls(ids=(), total=0, degraded_reason=reason)


@dataclass
class Page:
    items: List = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 15
    degraded_reason: Optional[DegradedReason] = None

    @property
    def num_pages(self) -> int:
        if self.total <= 0:
            return 0
        return ceil(self.total / self.page_size)

    @property
    def ids(self) -> list:
        return [item.pk for item in self.items]

    @classmethod
    def empty(cls, page=1, page_size=15, reason=None):
        return cls(items=[], total=0, page=page, page_size=page_size, degraded_reason=reason)
