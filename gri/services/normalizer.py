"""
Proposal Normalizer

Maps raw Sputnik DAO proposal records into canonical Proposal objects with
fixed-shape vote tallies.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


NANOS_PER_MILLI = 1_000_000


class ProposalStatus(str, Enum):
    IN_PROGRESS = "InProgress"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    REMOVED = "Removed"
    EXPIRED = "Expired"
    MOVED = "Moved"
    FAILED = "Failed"


class VoteAction(str, Enum):
    APPROVE = "Approve"
    REJECT = "Reject"
    REMOVE = "Remove"


class ProposalKindType(str, Enum):
    ADD_MEMBER_TO_ROLE = "AddMemberToRole"
    REMOVE_MEMBER_FROM_ROLE = "RemoveMemberFromRole"
    FUNCTION_CALL = "FunctionCall"
    TRANSFER = "Transfer"
    SET_STAKING_CONTRACT = "SetStakingContract"
    ADD_BOUNTY = "AddBounty"
    BOUNTY_DONE = "BountyDone"
    VOTE = "Vote"
    FACTORY_INFO_UPDATE = "FactoryInfoUpdate"
    CHANGE_POLICY = "ChangePolicy"
    CHANGE_POLICY_ADD_OR_UPDATE_ROLE = "ChangePolicyAddOrUpdateRole"
    CHANGE_POLICY_REMOVE_ROLE = "ChangePolicyRemoveRole"
    CHANGE_POLICY_UPDATE_DEFAULT_VOTE_POLICY = "ChangePolicyUpdateDefaultVotePolicy"
    CHANGE_POLICY_UPDATE_PARAMETERS = "ChangePolicyUpdateParameters"
    CHANGE_CONFIG = "ChangeConfig"
    UPGRADE_SELF = "UpgradeSelf"
    UPGRADE_REMOTE = "UpgradeRemote"
    UNKNOWN = "Unknown"


@dataclass
class ProposalKind:
    """Tagged proposal action; the payload is kept opaque"""
    type: ProposalKindType
    payload: Any = None

    @classmethod
    def from_raw(cls, raw: Any) -> "ProposalKind":
        # Unit variants arrive as bare strings, data variants as {"Name": {...}}
        if isinstance(raw, str):
            name, payload = raw, None
        elif isinstance(raw, dict) and len(raw) == 1:
            name, payload = next(iter(raw.items()))
        else:
            return cls(ProposalKindType.UNKNOWN, raw)

        try:
            return cls(ProposalKindType(name), payload)
        except ValueError:
            return cls(ProposalKindType.UNKNOWN, raw)

    def to_raw(self) -> Any:
        """Inverse of from_raw, used for JSON storage"""
        if self.type == ProposalKindType.UNKNOWN:
            return self.payload
        if self.payload is None:
            return self.type.value
        return {self.type.value: self.payload}


@dataclass
class VoteCounts:
    approve: int = 0
    reject: int = 0
    remove: int = 0

    @property
    def total(self) -> int:
        return self.approve + self.reject + self.remove


@dataclass
class Proposal:
    """Canonical proposal as consumed by the GRI engine and the API"""
    id: int
    dao_id: str
    proposer: str = ""
    description: str = ""
    kind: ProposalKind = field(default_factory=lambda: ProposalKind(ProposalKindType.UNKNOWN))
    status: str = ProposalStatus.IN_PROGRESS.value
    vote_count: VoteCounts = field(default_factory=VoteCounts)
    submission_time: str = "0"  # nanoseconds, string-encoded
    votes: Dict[str, str] = field(default_factory=dict)

    @property
    def submission_time_ms(self) -> int:
        """Submission time in milliseconds, computed on the wide integer"""
        return int(self.submission_time) // NANOS_PER_MILLI

    @property
    def voter_count(self) -> int:
        return len(self.votes)


def _as_count(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def sum_vote_counts(raw_counts: Any) -> VoteCounts:
    """Sum per-role [approve, reject, remove] tallies, skipping malformed entries"""
    counts = VoteCounts()
    if not isinstance(raw_counts, dict):
        return counts

    for tally in raw_counts.values():
        if not isinstance(tally, (list, tuple)) or len(tally) != 3:
            continue
        parsed = [_as_count(v) for v in tally]
        if any(v is None for v in parsed):
            continue
        counts.approve += parsed[0]
        counts.reject += parsed[1]
        counts.remove += parsed[2]

    return counts


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def parse_submission_time(value: Any) -> str:
    """Keep nanosecond timestamps as string-encoded integers"""
    if isinstance(value, bool):
        return "0"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value.isdigit():
        return str(int(value))
    return "0"


def normalize_proposal(raw: Dict[str, Any], dao_id: str) -> Proposal:
    """
    Normalize a raw proposal record from a Sputnik DAO contract.

    Missing or malformed optional fields fall back to defaults; this never raises
    for a dict input.
    """
    raw_votes = raw.get("votes")
    votes: Dict[str, str] = {}
    if isinstance(raw_votes, dict):
        for voter, action in raw_votes.items():
            votes[str(voter)] = action if isinstance(action, str) else str(action)

    raw_id = raw.get("id")
    proposal_id = raw_id if isinstance(raw_id, int) and not isinstance(raw_id, bool) else -1

    return Proposal(
        id=proposal_id,
        dao_id=dao_id,
        proposer=_as_str(raw.get("proposer")),
        description=_as_str(raw.get("description")),
        kind=ProposalKind.from_raw(raw.get("kind")),
        status=_as_str(raw.get("status")) or ProposalStatus.IN_PROGRESS.value,
        vote_count=sum_vote_counts(raw.get("vote_counts")),
        submission_time=parse_submission_time(raw.get("submission_time")),
        votes=votes,
    )
