"""RelationshipService: the invite/friendship state machine for user pairs.

Pair lifecycle: none -> invited -> friends -> none, with decline taking
invited back to none. Every mutator runs read-check-then-write inside one
transaction, and the write re-asserts the expected state in its WHERE
clause, so a concurrent change makes the call fail instead of corrupting
the pair.

Failed results carry their precondition flags in both ``data`` and
``error.detail``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from mercury.domain.relations import (
    PairState,
    RelationKind,
    is_valid_transition,
    pair_state,
    view_for,
)
from mercury.services._helpers import now_iso
from mercury.services.base import BaseService
from mercury.services.result import ServiceResult
from mercury.services.telemetry import traced

if TYPE_CHECKING:
    from mercury.infrastructure.store import RelationRecord, StoreSession

logger = logging.getLogger(__name__)


def _existence(s: StoreSession, first_id: str, second_id: str) -> dict[str, Any]:
    return {
        "first_user_exists": s.user_exists(first_id),
        "second_user_exists": s.user_exists(second_id),
    }


def _precheck(
    op: str, first_id: str, second_id: str, flags: dict[str, Any]
) -> ServiceResult | None:
    """Shared guard: both users exist and are distinct."""
    if not (flags["first_user_exists"] and flags["second_user_exists"]):
        missing = [
            uid
            for uid, exists in (
                (first_id, flags["first_user_exists"]),
                (second_id, flags["second_user_exists"]),
            )
            if not exists
        ]
        return ServiceResult.failure(
            op, "NOT_FOUND", f"No user found with ID: {', '.join(missing)}", flags=flags
        )
    if first_id == second_id:
        return ServiceResult.failure(
            op, "INVALID_SELF_RELATION", f"User cannot relate to itself: {first_id}", flags=flags
        )
    return None


def _log_transition(
    first_id: str, second_id: str, record: RelationRecord | None, target: str
) -> None:
    current = pair_state(record.kind if record else None)
    if not is_valid_transition(current, target):
        logger.warning("Unexpected pair transition %s -> %s", current, target)
    logger.info("Pair %s/%s: %s -> %s", first_id, second_id, current, target)


class RelationshipService(BaseService):
    """Sends, accepts, declines and removes friendships between two users."""

    @traced
    def check_friends(self, first_id: str, second_id: str) -> ServiceResult:
        """Report whether both users exist and whether they are friends.

        Always succeeds; a missing user simply means ``are_friends`` is False.
        """
        with self._store.session() as s:
            flags = _existence(s, first_id, second_id)
            both = flags["first_user_exists"] and flags["second_user_exists"]
            are_friends = both and first_id != second_id and s.are_friends(first_id, second_id)
        return ServiceResult(
            ok=True, op="check_friends", data={**flags, "are_friends": are_friends}
        )

    @traced
    def send_friend_request(self, sender_id: str, recipient_id: str) -> ServiceResult:
        """Create ``INVITE(sender -> recipient)``; re-sending is a no-op success.

        Refused when the pair is already friends or the recipient has a
        pending invite to the sender.
        """
        op = "send_friend_request"
        with self._store.transaction() as s:
            flags = _existence(s, sender_id, recipient_id)
            refused = _precheck(op, sender_id, recipient_id, flags)
            if refused is not None:
                return refused

            record = s.relation(sender_id, recipient_id)
            if record is not None and not (
                record.kind == RelationKind.INVITE and record.sender_id == sender_id
            ):
                return ServiceResult.failure(
                    op, "INVALID_STATE", "Friend request not sent", flags=flags
                )

            if record is None:
                _log_transition(sender_id, recipient_id, record, PairState.INVITED)
            if not s.merge_invite(sender_id, recipient_id, now_iso()):
                return ServiceResult.failure(
                    op, "INVALID_STATE", "Friend request not sent", flags=flags
                )

        return ServiceResult(
            ok=True, op=op, data={**flags, "already_pending": record is not None}
        )

    @traced
    def accept_friend_request(self, recipient_id: str, sender_id: str) -> ServiceResult:
        """Turn ``INVITE(sender -> recipient)`` into a friendship."""
        op = "accept_friend_request"
        with self._store.transaction() as s:
            flags = _existence(s, recipient_id, sender_id)
            flags.update(sent_invite=False, already_friends=False)
            refused = _precheck(op, recipient_id, sender_id, flags)
            if refused is not None:
                return refused

            record = s.relation(recipient_id, sender_id)
            flags["already_friends"] = (
                record is not None and record.kind == RelationKind.FRIENDSHIP
            )
            flags["sent_invite"] = (
                record is not None
                and record.kind == RelationKind.INVITE
                and record.sender_id == sender_id
            )
            if flags["already_friends"]:
                return ServiceResult.failure(
                    op, "INVALID_STATE", "Users are already friends", flags=flags
                )
            if not flags["sent_invite"]:
                return ServiceResult.failure(
                    op, "INVALID_STATE", f"No friend request from {sender_id}", flags=flags
                )

            _log_transition(recipient_id, sender_id, record, PairState.FRIENDS)
            if not s.accept_invite(recipient_id, sender_id, now_iso()):
                flags["sent_invite"] = False
                return ServiceResult.failure(
                    op, "INVALID_STATE", f"No friend request from {sender_id}", flags=flags
                )

        return ServiceResult(ok=True, op=op, data=flags)

    @traced
    def decline_friend_request(self, first_id: str, second_id: str) -> ServiceResult:
        """Delete a pending invite between the pair, whichever side sent it."""
        op = "decline_friend_request"
        with self._store.transaction() as s:
            flags = _existence(s, first_id, second_id)
            flags.update(was_friend=False, was_invited=False)
            refused = _precheck(op, first_id, second_id, flags)
            if refused is not None:
                return refused

            record = s.relation(first_id, second_id)
            flags["was_friend"] = record is not None and record.kind == RelationKind.FRIENDSHIP
            flags["was_invited"] = record is not None and record.kind == RelationKind.INVITE
            if flags["was_friend"]:
                return ServiceResult.failure(
                    op, "INVALID_STATE", "Users are friends; nothing to decline", flags=flags
                )
            if not flags["was_invited"]:
                return ServiceResult.failure(
                    op, "INVALID_STATE", "No pending friend request", flags=flags
                )

            _log_transition(first_id, second_id, record, PairState.NONE)
            if not s.delete_invite(first_id, second_id):
                flags["was_invited"] = False
                return ServiceResult.failure(
                    op, "INVALID_STATE", "No pending friend request", flags=flags
                )

        return ServiceResult(ok=True, op=op, data=flags)

    @traced
    def delete_friend(self, first_id: str, second_id: str) -> ServiceResult:
        """End the friendship between the pair."""
        op = "delete_friend"
        with self._store.transaction() as s:
            flags = _existence(s, first_id, second_id)
            flags["was_friend"] = False
            refused = _precheck(op, first_id, second_id, flags)
            if refused is not None:
                return refused

            record = s.relation(first_id, second_id)
            flags["was_friend"] = record is not None and record.kind == RelationKind.FRIENDSHIP
            if not flags["was_friend"]:
                return ServiceResult.failure(
                    op, "INVALID_STATE", "Users are not friends", flags=flags
                )

            _log_transition(first_id, second_id, record, PairState.NONE)
            if not s.delete_friendship(first_id, second_id):
                flags["was_friend"] = False
                return ServiceResult.failure(
                    op, "INVALID_STATE", "Users are not friends", flags=flags
                )

        return ServiceResult(ok=True, op=op, data=flags)

    @traced
    def relation_state(self, viewer_id: str, other_id: str) -> ServiceResult:
        """The pair's state from *viewer_id*'s side (for rendering friend buttons)."""
        op = "relation_state"
        with self._store.session() as s:
            flags = _existence(s, viewer_id, other_id)
            refused = _precheck(op, viewer_id, other_id, flags)
            if refused is not None:
                return refused
            record = s.relation(viewer_id, other_id)

        kind = record.kind if record else None
        sender = record.sender_id if record else None
        return ServiceResult(
            ok=True,
            op=op,
            data={
                **flags,
                "state": view_for(viewer_id, kind, sender).value,
                "pair_state": pair_state(kind).value,
            },
        )
