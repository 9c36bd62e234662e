"""LiveBadge: Access Classifier.

Decides, from one or two point-in-time count probes taken under different
credential tiers, whether a table's true row count is readable with the public
credential (serve it live) or hidden from it (serve a cached value that is
refreshed out-of-band).

The rules are evaluated in order and the first match marks the table as
protected. A table that matches none is public.

Known limitation: without a privileged probe, a table that really has zero rows
looks exactly like one whose rows are all hidden by row-level policies. It is
classified public.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from livebadge.connectors.remote.client import ProbeResult
from livebadge.models.badge_models import DEFAULT_SCHEMA
from livebadge.core.logging import get_logger

logger = get_logger("engine.classifier")


@dataclass(frozen=True)
class ProbePair:
    """The inputs every rule sees."""

    schema: str
    anon: ProbeResult
    service: Optional[ProbeResult] = None


@dataclass(frozen=True)
class ClassificationRule:
    name: str
    description: str
    matches: Callable[[ProbePair], bool]


@dataclass(frozen=True)
class Posture:
    """Classifier verdict."""

    protected: bool
    best_known_count: Optional[int] = None
    reason: Optional[str] = None


def _non_public_schema(p: ProbePair) -> bool:
    return p.schema != DEFAULT_SCHEMA


def _access_blocked(p: ProbePair) -> bool:
    return p.anon.blocked


def _counts_diverge(p: ProbePair) -> bool:
    return p.service is not None and p.anon.total != p.service.total


def _silently_filtered(p: ProbePair) -> bool:
    return (
        p.service is not None
        and p.anon.status == 200
        and p.anon.total == 0
        and p.service.total > 0
    )


RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule(
        "non_public_schema",
        "Non-public schemas are unreachable under the public tier",
        _non_public_schema,
    ),
    ClassificationRule(
        "access_blocked",
        "Public credential was rejected with 401/403",
        _access_blocked,
    ),
    ClassificationRule(
        "counts_diverge",
        "Public and privileged counts differ",
        _counts_diverge,
    ),
    ClassificationRule(
        "silently_filtered",
        "Public tier sees zero rows while privileged tier sees some",
        _silently_filtered,
    ),
)


def first_matching_rule(pair: ProbePair) -> Optional[ClassificationRule]:
    for rule in RULES:
        if rule.matches(pair):
            return rule
    return None


def classify(
    schema: str,
    anon: ProbeResult,
    service: Optional[ProbeResult] = None,
) -> Posture:
    """Classify a table as public or protected.

    A privileged probe that did not produce a readable count is ignored, so a
    failed request can never pass for a diverging count.
    """
    if service is not None and not service.ok:
        logger.warning(
            f"Ignoring unusable privileged probe (status {service.status})",
            extra={"tier": "privileged", "status_code": service.status},
        )
        service = None

    rule = first_matching_rule(ProbePair(schema=schema, anon=anon, service=service))
    if rule is None:
        return Posture(protected=False)

    best_known = service.total if service is not None else None
    logger.info(f"Classified protected: {rule.name}")
    return Posture(protected=True, best_known_count=best_known, reason=rule.name)
