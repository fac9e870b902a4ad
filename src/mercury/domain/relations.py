"""Relation kinds and the pair lifecycle.

A pair of distinct users is in exactly one state at a time:

- ``none``: no relation row.
- ``invited``: one directed invite (the sender is recorded).
- ``friends``: one undirected friendship.

Pairs are stored under their normalized (low, high) key, so a second
invite direction or an invite next to a friendship cannot exist.
"""

from __future__ import annotations

from enum import StrEnum


class RelationKind(StrEnum):
    """Kinds of relation row stored per pair."""

    INVITE = "invite"
    FRIENDSHIP = "friendship"


class PairState(StrEnum):
    """Lifecycle state of an unordered pair."""

    NONE = "none"
    INVITED = "invited"
    FRIENDS = "friends"


class RelationView(StrEnum):
    """A pair's state as seen by one of its members."""

    NONE = "none"
    INVITE_SENT = "invite_sent"
    INVITE_RECEIVED = "invite_received"
    FRIENDS = "friends"


# --- Transition map ---

PAIR_TRANSITIONS: dict[str, list[str]] = {
    "none": ["invited"],
    "invited": ["friends", "none"],  # accept | decline
    "friends": ["none"],  # delete friend
}


def is_valid_transition(current: str, target: str) -> bool:
    """Check if moving a pair from *current* to *target* is allowed."""
    return target in PAIR_TRANSITIONS.get(current, [])


def normalize_pair(first_id: str, second_id: str) -> tuple[str, str]:
    """Return the unordered storage key for two user ids.

    Raises:
        ValueError: If both ids are the same user.
    """
    if first_id == second_id:
        msg = f"A user cannot relate to itself: {first_id!r}"
        raise ValueError(msg)
    if first_id < second_id:
        return first_id, second_id
    return second_id, first_id


def pair_state(kind: str | None) -> PairState:
    """Map a stored relation kind (or its absence) to the pair state."""
    if kind is None:
        return PairState.NONE
    if kind == RelationKind.FRIENDSHIP:
        return PairState.FRIENDS
    return PairState.INVITED


def view_for(viewer_id: str, kind: str | None, sender_id: str | None) -> RelationView:
    """Describe a stored relation from *viewer_id*'s side of the pair."""
    state = pair_state(kind)
    if state is PairState.NONE:
        return RelationView.NONE
    if state is PairState.FRIENDS:
        return RelationView.FRIENDS
    if sender_id == viewer_id:
        return RelationView.INVITE_SENT
    return RelationView.INVITE_RECEIVED
