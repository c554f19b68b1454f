"""Report records and the persistence contract shared by every store."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_OWNER_ID = "00000000-0000-0000-0000-000000000001"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReportStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class ReportCreate(BaseModel):
    """Insert payload; stores assign id, counters and timestamps."""

    title: str = Field(min_length=1)
    content: Any = None
    status: ReportStatus = ReportStatus.DRAFT
    owner_id: str = DEFAULT_OWNER_ID
    organization_id: Optional[str] = None
    template_id: Optional[str] = None
    analysis_task_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ReportUpdate(BaseModel):
    """Partial update; only explicitly set fields are applied."""

    title: Optional[str] = None
    content: Any = None
    status: Optional[ReportStatus] = None
    template_id: Optional[str] = None
    tags: Optional[List[str]] = None
    metadata: Optional[Dict[str, Any]] = None
    published_at: Optional[datetime] = None
    view_count: Optional[int] = None
    download_count: Optional[int] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class Report(ReportCreate):
    """Stored record; identical in shape whichever store served it."""

    model_config = ConfigDict(frozen=True)

    id: str
    published_at: Optional[datetime] = None
    view_count: int = 0
    download_count: int = 0
    created_at: datetime
    updated_at: datetime

    @classmethod
    def new(cls, report_id: str, payload: ReportCreate, now: datetime) -> "Report":
        return cls(id=report_id, created_at=now, updated_at=now, **payload.model_dump())

    def updated(self, patch: ReportUpdate, now: datetime) -> "Report":
        return self.model_copy(update={**patch.changes(), "updated_at": now})


class IReportStore(Protocol):
    """Async CRUD over report records."""

    async def create(self, report: ReportCreate) -> Report:
        """Persist a new report and return the stored record."""

    async def update(self, report_id: str, patch: ReportUpdate) -> Optional[Report]:
        """Apply ``patch``; ``None`` when the report does not exist."""

    async def get(self, report_id: str) -> Optional[Report]:
        """Fetch one report or ``None``."""

    async def delete(self, report_id: str) -> bool:
        """Remove a report; ``False`` when nothing was deleted."""

    async def list(self, page: int = 1, page_size: int = 20) -> List[Report]:
        """Newest reports first, one page at a time."""
