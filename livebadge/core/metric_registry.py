"""LiveBadge: Metric Registry.

Defines the metrics a badge can display and how each one is read from the
remote project.
"""

from enum import Enum
from typing import Dict


class MetricKind(str, Enum):
    """What a badge counts."""

    TABLE_COUNT = "table_count"  # Rows in a table or view
    USER_COUNT = "user_count"  # Registered auth users


class MetricDefinition:
    """Describes a single metric kind."""

    def __init__(
        self,
        kind: MetricKind,
        default_label: str,
        description: str = "",
        requires_table: bool = False,
        dynamic: bool = True,
    ):
        self.kind = kind
        self.default_label = default_label
        self.description = description
        self.requires_table = requires_table
        # Dynamic metrics may be fetched live under the public credential
        self.dynamic = dynamic

    def __repr__(self) -> str:
        return f"<Metric {self.kind.value} (dynamic={self.dynamic})>"


METRICS: Dict[MetricKind, MetricDefinition] = {
    MetricKind.TABLE_COUNT: MetricDefinition(
        MetricKind.TABLE_COUNT,
        "Records",
        "Row count for any table or view",
        requires_table=True,
    ),
    MetricKind.USER_COUNT: MetricDefinition(
        MetricKind.USER_COUNT,
        "Users",
        "Total authenticated users",
        dynamic=False,
    ),
}


def get_metric(kind: MetricKind | str) -> MetricDefinition | None:
    """Look up a metric definition by kind or kind name."""
    try:
        return METRICS.get(MetricKind(kind))
    except ValueError:
        return None
