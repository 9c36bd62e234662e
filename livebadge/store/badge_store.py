"""LiveBadge: Badge Record Store.

A keyed store over the ``badges`` table: create, read by id, and overwrite
the cached value. Concurrent refreshes race on the final write and the last
one wins.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Session

from livebadge.models.badge_models import MetricRecord
from livebadge.core.logging import get_logger

logger = get_logger("store")


class BadgeStore:
    """Persist and load badge records."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, record: MetricRecord) -> MetricRecord:
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        logger.info(
            f"Badge created ({record.metric_kind}, protected={record.protected})",
            extra={"badge_id": record.id, "metric_kind": record.metric_kind},
        )
        return record

    def get(self, badge_id: str) -> Optional[MetricRecord]:
        if not badge_id:
            return None
        return self.session.get(MetricRecord, badge_id)

    def update_cached_value(self, badge_id: str, value: int) -> Optional[MetricRecord]:
        """Overwrite the cached value. Returns None if the record is gone."""
        if value < 0:
            raise ValueError("cached value must be non-negative")
        record = self.get(badge_id)
        if record is None:
            return None
        record.cached_value = value
        record.refreshed_at = datetime.now(timezone.utc)
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        logger.info(
            f"Cached value updated to {value}",
            extra={"badge_id": badge_id},
        )
        return record
