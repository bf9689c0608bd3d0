"""
backend/approvals.py

Collaborative approval of spendings and modification requests.

The outcome rule is pluggable: whoever owns the approval data supplies an
ApprovalPolicy. ActiveInvestorQuorum is the rule modification requests use.

Votes are a mapping of voter id -> {"status": "approved" | "rejected", ...}.
Pure Python logic - no FastAPI imports, no database access.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol, Tuple

from backend.models import ADMIN_TIER_ROLES, ApprovalStatus, Viewer
from backend.privacy import to_plain

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({ApprovalStatus.approved, ApprovalStatus.rejected})


class ApprovalClosedError(Exception):
    """Raised when a vote is cast on an already approved or rejected request."""
    pass


class VoteNotAllowedError(Exception):
    """Raised when the viewer is neither an active investor nor privileged."""
    pass


class ApprovalPolicy(Protocol):
    def decide_outcome(self, votes: Mapping[str, Mapping[str, Any]]) -> ApprovalStatus:
        ...


@dataclass(frozen=True)
class ActiveInvestorQuorum:
    """
    Any rejection rejects the request. It is approved once at least
    required_votes approvals (and at least one) have been cast.
    """
    required_votes: int

    def decide_outcome(self, votes: Mapping[str, Mapping[str, Any]]) -> ApprovalStatus:
        approved, rejected = _count(votes)
        if rejected:
            return ApprovalStatus.rejected
        if approved and approved >= self.required_votes:
            return ApprovalStatus.approved
        return ApprovalStatus.pending


def normalize_votes(votes: Any) -> Dict[str, Dict[str, Any]]:
    """Turn stored votes (None, mapping, or Plainable wrapper) into a plain dict."""
    votes = to_plain(votes)
    if not votes:
        return {}
    return {str(voter): dict(to_plain(vote) or {}) for voter, vote in votes.items()}


def _count(votes: Mapping[str, Mapping[str, Any]]) -> Tuple[int, int]:
    approved = sum(1 for v in votes.values() if (v or {}).get("status") == ApprovalStatus.approved.value)
    rejected = sum(1 for v in votes.values() if (v or {}).get("status") == ApprovalStatus.rejected.value)
    return approved, rejected


def summarize_votes(votes: Any, eligible_count: int = 0) -> Dict[str, int]:
    """
    Vote tally for display.

    total is the number of eligible voters, or the number of votes cast when
    no eligible count is known.
    """
    approved, rejected = _count(normalize_votes(votes))
    total = eligible_count or approved + rejected
    return {
        "approved": approved,
        "rejected": rejected,
        "pending": max(total - approved - rejected, 0),
        "total": total,
    }


def can_vote(viewer: Optional[Viewer], active_investor_ids: Iterable[str]) -> bool:
    """Active investors may vote; so may project_admin, admin and super_admin."""
    if viewer is None or viewer.id is None:
        return False
    if viewer.role in ADMIN_TIER_ROLES:
        return True
    return viewer.id in {str(i) for i in active_investor_ids}


def ensure_can_vote(viewer: Optional[Viewer], active_investor_ids: Iterable[str]) -> None:
    if not can_vote(viewer, active_investor_ids):
        raise VoteNotAllowedError("Only active investors can vote")


def cast_vote(
    status: ApprovalStatus,
    votes: Any,
    voter_id: str,
    decision: ApprovalStatus,
    policy: ApprovalPolicy,
    reason: Optional[str] = None,
) -> Tuple[Dict[str, Dict[str, Any]], ApprovalStatus]:
    """
    Record one vote and let the policy decide the new status.

    A voter's earlier vote is replaced. Once the policy returns a terminal
    status (ActiveInvestorQuorum does so on the first rejection) no further
    votes are accepted.

    Returns:
        (new votes dict, new status); the inputs are not mutated

    Raises:
        ApprovalClosedError: If status is already approved or rejected
        ValueError: If decision is not approved/rejected
    """
    status = ApprovalStatus(status)
    decision = ApprovalStatus(decision)

    if status == ApprovalStatus.approved:
        raise ApprovalClosedError("This request has already been fully approved")
    if status == ApprovalStatus.rejected:
        raise ApprovalClosedError("This request has already been rejected")
    if decision not in TERMINAL_STATUSES:
        raise ValueError(f"Invalid vote: {decision.value}")

    new_votes = normalize_votes(votes)
    vote: Dict[str, Any] = {
        "status": decision.value,
        "date": datetime.now(timezone.utc).isoformat(),
        "user": voter_id,
    }
    reason = (reason or "").strip()
    if decision == ApprovalStatus.rejected and reason:
        vote["reason"] = reason
    new_votes[str(voter_id)] = vote

    outcome = policy.decide_outcome(new_votes)
    logger.info(
        "[APPROVALS] Vote recorded: voter=%s, decision=%s, outcome=%s",
        voter_id, decision.value, outcome.value,
    )
    return new_votes, outcome
