"""
Shared value types for sponsor listing, pagination and bulk import.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

ALL = "All"
UNASSIGNED = "Unassigned"


class SponsorStatus(str, Enum):
    IN_PROGRESS = "In Progress"
    CONTACTED = "Contacted"
    COMPLETED = "Completed"
    FOLLOW_UP_REQUIRED = "Follow-up Required"
    NOT_INTERESTED = "Not Interested"
    COLD_MAIL = "Cold Mail"
    COLD_CALL = "Cold Call"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


DEFAULT_STATUS = SponsorStatus.IN_PROGRESS.value


class DataSource(str, Enum):
    PRIMARY = "primary"
    LOCAL = "local"


@dataclass(frozen=True)
class SponsorQuery:
    """Filter and page window for a sponsor listing."""

    page: int = 1
    limit: int = 10
    search: str = ""
    status: str = ALL
    team: str = ALL

    def __post_init__(self):
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if self.limit < 1:
            raise ValueError("limit must be >= 1")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def search_term(self) -> str:
        return (self.search or "").strip().lower()

    def matches(
        self,
        company_name: Optional[str],
        contact_person: Optional[str],
        status: Optional[str],
        assigned_team: Optional[str],
    ) -> bool:
        """In-memory form of the predicate the primary store builds in SQL."""
        term = self.search_term
        if term:
            haystacks = [(company_name or "").lower(), (contact_person or "").lower()]
            if not any(term in value for value in haystacks):
                return False
        if self.status and self.status != ALL and status != self.status:
            return False
        if self.team and self.team != ALL:
            if self.team == UNASSIGNED:
                if assigned_team:
                    return False
            elif assigned_team != self.team:
                return False
        return True


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


@dataclass
class Page:
    items: list
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return page_count(self.total, self.limit)

    def pagination(self) -> dict:
        return {
            "total": self.total,
            "page": self.page,
            "pages": self.pages,
            "limit": self.limit,
        }


def slice_page(items: Sequence, query: SponsorQuery) -> Page:
    """Window an already filtered, already ordered sequence."""
    window = list(items[query.offset : query.offset + query.limit])
    return Page(items=window, total=len(items), page=query.page, limit=query.limit)


@dataclass
class BulkResult:
    added: int = 0
    skipped: int = 0
    total: int = 0
    new_sponsors: list = field(default_factory=list)
