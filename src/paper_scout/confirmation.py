"""Two-phase confirmation for destructive tool calls.

A gated call is first recorded as a *proposal* in the ``pending_actions``
table and only runs after an explicit approval arrives, possibly in a later
turn or process. States move strictly along::

    proposed -> approved -> executed
    proposed -> denied   -> aborted
    proposed -> aborted              (expired before anyone answered)
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

from paper_scout.errors import InvalidInputError
from paper_scout.storage import Row, SqlStore

logger = logging.getLogger(__name__)

APPROVAL_YES = "Yes, confirmed."
APPROVAL_NO = "No, denied."

DEFAULT_APPROVAL_TTL = timedelta(minutes=15)

ApprovalState = Literal["proposed", "approved", "denied", "executed", "aborted"]

_TRANSITIONS: dict[str, frozenset[str]] = {
    "proposed": frozenset({"approved", "denied", "aborted"}),
    "approved": frozenset({"executed"}),
    "denied": frozenset({"aborted"}),
    "executed": frozenset(),
    "aborted": frozenset(),
}

_YES_ANSWERS = frozenset({APPROVAL_YES.casefold(), "y", "yes"})
_NO_ANSWERS = frozenset({APPROVAL_NO.casefold(), "n", "no"})


def _utcnow() -> datetime:
    return datetime.now(UTC)


def parse_approval(text: str | None) -> bool | None:
    """Map an approval signal to True/False; None when it is neither."""
    if text is None:
        return None
    answer = text.strip().casefold()
    if answer in _YES_ANSWERS:
        return True
    if answer in _NO_ANSWERS:
        return False
    return None


@dataclass(slots=True)
class PendingAction:
    """A proposed tool call awaiting (or past) its approval decision."""

    action_id: str
    tool_name: str
    payload: dict[str, Any]
    state: ApprovalState
    created_at: datetime
    resolved_at: datetime | None = None
    reason: str = ""  # why an action ended up aborted: "denied" or "expired"
    summary: str = field(default="", compare=False)

    @property
    def is_open(self) -> bool:
        return self.state == "proposed"


def _row_to_action(row: Row) -> PendingAction:
    resolved = row.get("resolved_at")
    return PendingAction(
        action_id=row["action_id"],
        tool_name=row["tool_name"],
        payload=json.loads(row["payload_json"]),
        state=row["state"],
        created_at=datetime.fromisoformat(row["created_at"]),
        resolved_at=datetime.fromisoformat(resolved) if resolved else None,
        reason=row.get("reason") or "",
        summary=row.get("summary") or "",
    )


class ApprovalQueue:
    """Persisted proposals for confirmation-gated tool calls.

    A proposal older than ``ttl`` that is still unanswered is aborted the
    next time it is looked at.
    """

    def __init__(
        self,
        store: SqlStore,
        *,
        ttl: timedelta = DEFAULT_APPROVAL_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._ttl = ttl
        self._clock = clock

    def init_schema(self) -> None:
        """Create the pending_actions table if it doesn't exist."""
        self._store.execute(
            "CREATE TABLE IF NOT EXISTS pending_actions ("
            "  action_id TEXT PRIMARY KEY,"
            "  tool_name TEXT NOT NULL,"
            "  payload_json TEXT NOT NULL,"
            "  summary TEXT NOT NULL DEFAULT '',"
            "  state TEXT NOT NULL,"
            "  reason TEXT NOT NULL DEFAULT '',"
            "  created_at TEXT NOT NULL,"
            "  resolved_at TEXT"
            ")"
        )

    def propose(self, tool_name: str, payload: dict[str, Any], summary: str = "") -> PendingAction:
        """Record a new proposal. Nothing is executed."""
        action = PendingAction(
            action_id=uuid.uuid4().hex,
            tool_name=tool_name,
            payload=dict(payload),
            state="proposed",
            created_at=self._clock(),
            summary=summary,
        )
        self._store.execute(
            "INSERT INTO pending_actions "
            "(action_id, tool_name, payload_json, summary, state, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                action.action_id,
                tool_name,
                json.dumps(action.payload),
                summary,
                action.state,
                action.created_at.isoformat(),
            ),
        )
        logger.info("Proposed %s (%s) awaiting approval", tool_name, action.action_id)
        return action

    def get(self, action_id: str) -> PendingAction | None:
        """Load a proposal, aborting it first if it has expired."""
        rows = self._store.execute(
            "SELECT * FROM pending_actions WHERE action_id = ?", (action_id,)
        )
        if not rows:
            return None
        action = _row_to_action(rows[0])
        if action.is_open and self._clock() - action.created_at > self._ttl:
            logger.info("Approval for %s expired", action_id)
            action = self._transition(action, "aborted", reason="expired")
        return action

    def pending(self) -> list[PendingAction]:
        """Unanswered, unexpired proposals, oldest first."""
        rows = self._store.execute(
            "SELECT action_id FROM pending_actions WHERE state = 'proposed' "
            "ORDER BY created_at, rowid"
        )
        actions = [self.get(row["action_id"]) for row in rows]
        return [action for action in actions if action is not None and action.is_open]

    def resolve(self, action_id: str, approved: bool) -> PendingAction:
        """Record the user's decision on an open proposal.

        A denial goes straight through ``denied`` to ``aborted``. Resolving an
        unknown, expired, or already-answered proposal raises InvalidInputError.
        """
        with self._store.transaction():
            action = self.get(action_id)
            if action is not None and action.is_open:
                if approved:
                    return self._transition(action, "approved")
                action = self._transition(action, "denied", reason="denied")
                return self._transition(action, "aborted", reason="denied")

        # Raised after commit so an expiry recorded by get() is kept.
        if action is None:
            raise InvalidInputError("action_id", f"no pending action {action_id!r}")
        detail = f" ({action.reason})" if action.reason else ""
        raise InvalidInputError(
            "action_id", f"action {action_id!r} is already {action.state}{detail}"
        )

    def mark_executed(self, action_id: str) -> PendingAction:
        """Close an approved proposal once its tool call has run."""
        with self._store.transaction():
            action = self.get(action_id)
            if action is None:
                raise InvalidInputError("action_id", f"no pending action {action_id!r}")
            return self._transition(action, "executed")

    def _transition(
        self, action: PendingAction, new_state: ApprovalState, *, reason: str = ""
    ) -> PendingAction:
        if new_state not in _TRANSITIONS[action.state]:
            raise InvalidInputError(
                "action_id", f"cannot move action from {action.state} to {new_state}"
            )
        now = self._clock()
        self._store.execute(
            "UPDATE pending_actions SET state = ?, reason = ?, resolved_at = ? "
            "WHERE action_id = ?",
            (new_state, reason or action.reason, now.isoformat(), action.action_id),
        )
        action.state = new_state
        action.reason = reason or action.reason
        action.resolved_at = now
        return action


__all__ = [
    "APPROVAL_NO",
    "APPROVAL_YES",
    "DEFAULT_APPROVAL_TTL",
    "ApprovalQueue",
    "ApprovalState",
    "PendingAction",
    "parse_approval",
]
