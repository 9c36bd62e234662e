"""LiveBadge: Badge Record & API Schemas."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel
from sqlmodel import SQLModel, Field

from livebadge.core.errors import InputInvalid

DEFAULT_SCHEMA = "public"
DEFAULT_COLOR = "#4F46E5"


# ─────────────────────────────────────────────
# TABLE REFERENCE
# ─────────────────────────────────────────────


@dataclass(frozen=True)
class TableRef:
    """A table or view, qualified by its schema."""

    schema: str
    table: str

    @property
    def is_public(self) -> bool:
        return self.schema == DEFAULT_SCHEMA

    @property
    def full_name(self) -> str:
        if self.is_public:
            return self.table
        return f"{self.schema}.{self.table}"

    @classmethod
    def parse(cls, raw: str) -> "TableRef":
        """Parse ``table`` or ``schema.table``; schema defaults to public."""
        text = (raw or "").strip()
        if not text:
            raise InputInvalid("Table name is required for table_count metric")
        if "." in text:
            schema, table = (part.strip() for part in text.split(".", 1))
        else:
            schema, table = DEFAULT_SCHEMA, text
        if not schema or not table:
            raise InputInvalid(f"Malformed table reference: {raw!r}")
        return cls(schema=schema, table=table)


# ─────────────────────────────────────────────
# DATABASE MODEL
# ─────────────────────────────────────────────


def _new_badge_id() -> str:
    return uuid.uuid4().hex


class MetricRecord(SQLModel, table=True):
    """One badge: where to read the metric and how to draw it.

    ``cached_value`` and ``refreshed_at`` are the only fields that change
    after creation. The privileged credential is never stored here.
    """

    __tablename__ = "badges"

    id: str = Field(default_factory=_new_badge_id, primary_key=True)
    endpoint: str = Field(description="Base URL of the remote project")
    public_credential: str = Field(description="Low-privilege API key")
    label: str
    color: str = Field(default=DEFAULT_COLOR)
    metric_kind: str = Field(index=True, description="table_count | user_count")
    table_schema: Optional[str] = Field(default=None)
    table_name: Optional[str] = Field(default=None)
    protected: bool = Field(default=False)
    protection_reason: Optional[str] = Field(default=None)
    cached_value: Optional[int] = Field(default=None, ge=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    refreshed_at: Optional[datetime] = Field(default=None)

    @property
    def table_ref(self) -> Optional[TableRef]:
        if not self.table_name:
            return None
        return TableRef(schema=self.table_schema or DEFAULT_SCHEMA, table=self.table_name)


# ─────────────────────────────────────────────
# PYDANTIC SCHEMAS
# ─────────────────────────────────────────────


class SetupRequest(BaseModel):
    """Request body for POST /api/setup."""

    project_url: str = ""
    anon_key: str = ""
    label: str = ""
    metric_type: str = ""
    table_name: Optional[str] = None
    color: Optional[str] = None
    service_role_key: Optional[str] = None
    """Privileged key; used once to classify and seed, never stored."""

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "project_url": "https://abc.supabase.co",
                    "anon_key": "sb_publishable_xxx",
                    "label": "Records",
                    "metric_type": "table_count",
                    "table_name": "analytics.events",
                    "service_role_key": "sb_secret_xxx",
                }
            ]
        }
    }


class SetupResponse(BaseModel):
    """Response for POST /api/setup."""

    badge_id: str
    badge_url: str
    protected: bool
    reason: Optional[str] = None
    refresh_url: Optional[str] = None


class RefreshRequest(BaseModel):
    """Request body for POST /badge-refresh/{badge_id}."""

    service_key: str = ""


class TablesRequest(BaseModel):
    """Request body for POST /api/tables."""

    project_url: str = ""
    service_key: str = ""


class TableInfo(BaseModel):
    schema_name: str
    table: str
    full_name: str


class TablesResponse(BaseModel):
    tables: List[TableInfo] = []


class MetricInfo(BaseModel):
    """A metric a badge can display."""

    metric_type: str
    default_label: str
    description: str
    requires_table: bool
    dynamic: bool


class BadgeInfo(BaseModel):
    """Public view of a badge record. Never carries credentials."""

    badge_id: str
    label: str
    color: str
    metric_kind: str
    table: Optional[str] = None
    protected: bool
    protection_reason: Optional[str] = None
    cached_value: Optional[int] = None
    created_at: datetime
    refreshed_at: Optional[datetime] = None
    badge_url: str
    refresh_url: Optional[str] = None
