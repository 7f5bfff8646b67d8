from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

PLACEHOLDER = "—"


# --- Cabinets ---
class Cabinet(BaseModel):
    name: str
    login: str
    password: str = Field(repr=False)
    model_config = ConfigDict(frozen=True)


class SkippedCabinet(BaseModel):
    row_number: int
    name: Optional[str] = None
    reason: str


# --- MoySklad ---
class Product(BaseModel):
    name: str = PLACEHOLDER
    article: str = PLACEHOLDER
    code: str = PLACEHOLDER
    model_config = ConfigDict(frozen=True)


# --- Sync ---
class CabinetFailure(BaseModel):
    cabinet: str
    kind: str
    error: str


class SyncReport(BaseModel):
    started_at: datetime
    finished_at: Optional[datetime] = None
    dry_run: bool = False
    cabinets_total: int = 0
    synced: List[str] = Field(default_factory=list)
    skipped: List[SkippedCabinet] = Field(default_factory=list)
    failures: List[CabinetFailure] = Field(default_factory=list)
    rows: Dict[str, int] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures


class SyncRunPayload(BaseModel):
    cabinets: Optional[List[str]] = None
    dry_run: bool = False


class SyncJobQueued(BaseModel):
    status: str
    job_id: Optional[str] = None
    detail: Optional[str] = None


class SyncStatus(BaseModel):
    rq_worker_online: bool
    last_error: Optional[str] = None
    last_report: Optional[SyncReport] = None
