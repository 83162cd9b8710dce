"""
GRI Scoring Engine

Computes the Governance Reality Index of a DAO from its proposals:

- Participation (40%)
- Execution Reliability (30%)
- Governance Latency (20%)
- Transparency (10%)

Every component reports the raw value and a description of how its score
was derived. Changing a weight changes the scoring contract and must bump
GRI_VERSION.
"""
import math
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional, Sequence

from gri.services.near_client import DAOPolicy
from gri.services.normalizer import Proposal, ProposalStatus


GRI_VERSION = "1.0"

WEIGHTS = {
    "participation": 0.4,
    "execution_reliability": 0.3,
    "governance_latency": 0.2,
    "transparency": 0.1,
}

NEUTRAL_SCORE = 50.0
DESCRIPTION_MIN_LENGTH = 50


def round_score(value: float) -> float:
    """Round half up to one decimal"""
    return math.floor(value * 10 + 0.5) / 10


@dataclass
class GRIMetric:
    """One scored component with its derivation"""
    score: float
    weight: float
    raw_value: float
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "weight": self.weight,
            "raw_value": self.raw_value,
            "description": self.description,
        }


@dataclass
class GRIBreakdown:
    participation: GRIMetric
    execution_reliability: GRIMetric
    governance_latency: GRIMetric
    transparency: GRIMetric

    def metrics(self) -> List[GRIMetric]:
        return [
            self.participation,
            self.execution_reliability,
            self.governance_latency,
            self.transparency,
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "participation": self.participation.to_dict(),
            "execution_reliability": self.execution_reliability.to_dict(),
            "governance_latency": self.governance_latency.to_dict(),
            "transparency": self.transparency.to_dict(),
        }


@dataclass
class GRIScore:
    """Composite score; last_updated is metadata, not an input"""
    overall: float
    breakdown: GRIBreakdown
    last_updated: str
    version: str = GRI_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall,
            "breakdown": self.breakdown.to_dict(),
            "last_updated": self.last_updated,
            "version": self.version,
        }


def compute_gri(
    proposals: Sequence[Proposal],
    policy: Optional[DAOPolicy],
    member_count: int,
) -> GRIScore:
    """
    Calculate the full GRI score for a DAO.

    The policy is accepted for interface stability; no current component
    reads it.
    """
    statuses = Counter(p.status for p in proposals)

    breakdown = GRIBreakdown(
        participation=participation_score(proposals, member_count),
        execution_reliability=execution_reliability_score(proposals, statuses),
        governance_latency=governance_latency_score(proposals, statuses),
        transparency=transparency_score(proposals),
    )

    overall = sum(metric.score * metric.weight for metric in breakdown.metrics())

    return GRIScore(
        overall=round_score(min(max(overall, 0.0), 100.0)),
        breakdown=breakdown,
        last_updated=datetime.now(timezone.utc).isoformat(),
    )


def participation_score(proposals: Sequence[Proposal], member_count: int) -> GRIMetric:
    """Average unique voters per proposal over the member count"""
    weight = WEIGHTS["participation"]
    if not proposals or member_count <= 0:
        return GRIMetric(0.0, weight, 0.0, "No proposals or members found")

    avg_voters = sum(len(p.votes) for p in proposals) / len(proposals)
    rate = min((avg_voters / member_count) * 100, 100.0)

    return GRIMetric(
        score=round_score(rate),
        weight=weight,
        raw_value=round_score(avg_voters),
        description=f"Average {avg_voters:.1f} voters per proposal out of {member_count} members",
    )


def execution_reliability_score(
    proposals: Sequence[Proposal],
    statuses: Optional[Counter] = None,
) -> GRIMetric:
    """Approved share of proposals that reached approved, failed or expired"""
    weight = WEIGHTS["execution_reliability"]
    if not proposals:
        return GRIMetric(0.0, weight, 0.0, "No proposals found")

    statuses = statuses if statuses is not None else Counter(p.status for p in proposals)
    approved = statuses[ProposalStatus.APPROVED.value]
    rejected = statuses[ProposalStatus.REJECTED.value]
    expired = statuses[ProposalStatus.EXPIRED.value]
    failed = statuses[ProposalStatus.FAILED.value]

    if approved + rejected == 0:
        return GRIMetric(NEUTRAL_SCORE, weight, 0.0, "No decided proposals yet")

    outcomes = approved + failed + expired
    if outcomes == 0:
        return GRIMetric(
            NEUTRAL_SCORE,
            weight,
            0.0,
            f"{rejected} rejected, none approved, expired or failed",
        )

    rate = min(approved / outcomes * 100, 100.0)
    return GRIMetric(
        score=round_score(rate),
        weight=weight,
        raw_value=float(approved),
        description=f"{approved} approved, {rejected} rejected, {expired} expired, {failed} failed",
    )


def governance_latency_score(
    proposals: Sequence[Proposal],
    statuses: Optional[Counter] = None,
) -> GRIMetric:
    """
    Proxy for decision speed.

    Proposals carry no decision timestamp, so the expired ratio is the only
    signal: 100 with no expirations, 0 once half of all proposals expired.
    """
    weight = WEIGHTS["governance_latency"]
    statuses = statuses if statuses is not None else Counter(p.status for p in proposals)
    decided = statuses[ProposalStatus.APPROVED.value] + statuses[ProposalStatus.REJECTED.value]

    if decided == 0:
        return GRIMetric(NEUTRAL_SCORE, weight, 0.0, "No decided proposals to measure latency")

    expired = statuses[ProposalStatus.EXPIRED.value]
    expired_ratio = expired / len(proposals)
    score = max(0.0, 100 - expired_ratio * 200)

    return GRIMetric(
        score=round_score(score),
        weight=weight,
        raw_value=expired_ratio,
        description=f"{expired} of {len(proposals)} proposals expired ({expired_ratio * 100:.1f}%)",
    )


def transparency_score(proposals: Sequence[Proposal]) -> GRIMetric:
    """Share of proposals with a description longer than 50 characters"""
    weight = WEIGHTS["transparency"]
    if not proposals:
        return GRIMetric(0.0, weight, 0.0, "No proposals found")

    detailed = sum(1 for p in proposals if len(p.description or "") > DESCRIPTION_MIN_LENGTH)
    rate = detailed / len(proposals) * 100

    return GRIMetric(
        score=round_score(rate),
        weight=weight,
        raw_value=float(detailed),
        description=f"{detailed} of {len(proposals)} proposals have detailed descriptions",
    )


def grade_of(score: float) -> str:
    """Get GRI grade label from score"""
    if score >= 80:
        return "Excellent"
    if score >= 60:
        return "Good"
    if score >= 40:
        return "Fair"
    if score >= 20:
        return "Needs Improvement"
    return "Critical"
