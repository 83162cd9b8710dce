"""Network-wide aggregation over per-DAO GRI scores"""
import random
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Any, List, Optional, Sequence

from gri.services.gri_engine import round_score
from gri.services.normalizer import Proposal

ACTIVITY_WINDOW = timedelta(days=30)


def median_of(scores: Sequence[float]) -> float:
    """Median of scores, 0 when empty"""
    if not scores:
        return 0
    ordered = sorted(scores)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def mean_of(scores: Sequence[float]) -> float:
    """Arithmetic mean rounded to one decimal, 0 when empty"""
    if not scores:
        return 0
    return round_score(sum(scores) / len(scores))


def _cutoff_ms(now: Optional[datetime]) -> int:
    now = now or datetime.now(timezone.utc)
    return int((now - ACTIVITY_WINDOW).timestamp() * 1000)


def is_recent(proposal: Proposal, now: Optional[datetime] = None) -> bool:
    """Submitted within the last 30 days (integer milliseconds)"""
    return proposal.submission_time_ms > _cutoff_ms(now)


def active_members(proposals: Sequence[Proposal], now: Optional[datetime] = None) -> int:
    """Distinct voters on proposals submitted within the last 30 days"""
    cutoff = _cutoff_ms(now)
    voters = set()
    for proposal in proposals:
        if proposal.submission_time_ms > cutoff:
            voters.update(proposal.votes.keys())
    return len(voters)


@dataclass
class DAOSnapshot:
    """Per-DAO input to the network summary"""
    dao_id: str
    gri: float
    proposals: List[Proposal] = field(default_factory=list)


@dataclass
class NetworkSummary:
    median_gri: float
    active_daos: int
    inactive_daos: int
    total_proposals: int
    total_votes: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "median_gri": self.median_gri,
            "active_daos": self.active_daos,
            "inactive_daos": self.inactive_daos,
            "total_proposals": self.total_proposals,
            "total_votes": self.total_votes,
        }


def summarize_network(
    snapshots: Sequence[DAOSnapshot],
    now: Optional[datetime] = None,
) -> NetworkSummary:
    """Median GRI, activity split and totals across all DAOs"""
    active = 0
    total_proposals = 0
    total_votes = 0

    for snapshot in snapshots:
        total_proposals += len(snapshot.proposals)
        total_votes += sum(len(p.votes) for p in snapshot.proposals)
        if any(is_recent(p, now) for p in snapshot.proposals):
            active += 1

    return NetworkSummary(
        median_gri=median_of([s.gri for s in snapshots]),
        active_daos=active,
        inactive_daos=len(snapshots) - active,
        total_proposals=total_proposals,
        total_votes=total_votes,
    )


def mock_participation_trend(days: int = 7, today: Optional[date] = None) -> List[Dict[str, Any]]:
    """
    Placeholder participation series around a 45% baseline.

    Not derived from stored data; there is no historical snapshot table.
    """
    today = today or datetime.now(timezone.utc).date()
    trend = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        trend.append({
            "date": day.isoformat(),
            "value": round_score(45 + random.uniform(-10, 10)),
        })
    return trend
