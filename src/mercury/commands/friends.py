"""Command group: invites, friendships and relation listings."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from mercury.commands._base import MercuryGroup, page_options
from mercury.services.listing import ListingService
from mercury.services.relationships import RelationshipService

if TYPE_CHECKING:
    from mercury.commands._context import AppContext

_FRIENDS_EXAMPLES = """\
  mercury friends send ALICE BOB
  mercury friends requests BOB
  mercury friends accept BOB ALICE
  mercury friends check ALICE BOB
  mercury friends list ALICE --page 1 --size 20
  mercury friends suggestions ALICE
  mercury friends state ALICE BOB
  mercury friends decline BOB ALICE
  mercury friends remove ALICE BOB"""


@click.group(cls=MercuryGroup, examples=_FRIENDS_EXAMPLES)
def friends() -> None:
    """Manage invites and friendships between users."""


# ── Pair operations ──────────────────────────────────────────────────


@friends.command(
    examples="""\
  mercury friends check ALICE BOB
  mercury --json friends check ALICE BOB"""
)
@click.argument("first_id")
@click.argument("second_id")
@click.pass_obj
def check(app: AppContext, first_id: str, second_id: str) -> None:
    """Tell whether two users are friends."""
    app.emit(RelationshipService(app.store).check_friends(first_id, second_id))


@friends.command(
    examples="""\
  mercury friends send ALICE BOB"""
)
@click.argument("sender_id")
@click.argument("recipient_id")
@click.pass_obj
def send(app: AppContext, sender_id: str, recipient_id: str) -> None:
    """Send a friend request from SENDER_ID to RECIPIENT_ID."""
    app.emit(RelationshipService(app.store).send_friend_request(sender_id, recipient_id))


@friends.command(
    examples="""\
  mercury friends accept BOB ALICE"""
)
@click.argument("user_id")
@click.argument("sender_id")
@click.pass_obj
def accept(app: AppContext, user_id: str, sender_id: str) -> None:
    """Accept the request SENDER_ID sent to USER_ID."""
    app.emit(RelationshipService(app.store).accept_friend_request(user_id, sender_id))


@friends.command(
    examples="""\
  mercury friends decline BOB ALICE"""
)
@click.argument("user_id")
@click.argument("other_id")
@click.pass_obj
def decline(app: AppContext, user_id: str, other_id: str) -> None:
    """Drop a pending request between the two users (either direction)."""
    app.emit(RelationshipService(app.store).decline_friend_request(user_id, other_id))


@friends.command(
    examples="""\
  mercury friends remove ALICE BOB"""
)
@click.argument("user_id")
@click.argument("friend_id")
@click.pass_obj
def remove(app: AppContext, user_id: str, friend_id: str) -> None:
    """End a friendship."""
    app.emit(RelationshipService(app.store).delete_friend(user_id, friend_id))


@friends.command(
    examples="""\
  mercury friends state ALICE BOB"""
)
@click.argument("viewer_id")
@click.argument("other_id")
@click.pass_obj
def state(app: AppContext, viewer_id: str, other_id: str) -> None:
    """Show the relation between two users as VIEWER_ID sees it."""
    app.emit(RelationshipService(app.store).relation_state(viewer_id, other_id))


# ── Listings ─────────────────────────────────────────────────────────


@friends.command(
    "list",
    examples="""\
  mercury friends list ALICE
  mercury friends list ALICE --page 2 --size 20
  mercury friends list ALICE --count""",
)
@click.argument("user_id")
@page_options
@click.option("--count", "count_only", is_flag=True, help="Only print the number of friends.")
@click.pass_obj
def list_cmd(
    app: AppContext, user_id: str, page: int, page_size: int | None, count_only: bool
) -> None:
    """List a user's friends."""
    svc = ListingService(app.store)
    if count_only:
        app.emit(svc.friends_count(user_id))
    else:
        app.emit(svc.friends(user_id, **app.page_args(page, page_size)))


@friends.command(
    examples="""\
  mercury friends requests BOB
  mercury friends requests BOB --count"""
)
@click.argument("user_id")
@page_options
@click.option("--count", "count_only", is_flag=True, help="Only print the number of requests.")
@click.pass_obj
def requests(
    app: AppContext, user_id: str, page: int, page_size: int | None, count_only: bool
) -> None:
    """List users who sent USER_ID a friend request, by last then first name."""
    svc = ListingService(app.store)
    if count_only:
        app.emit(svc.friend_requests_count(user_id))
    else:
        app.emit(svc.friend_requests(user_id, **app.page_args(page, page_size)))


@friends.command(
    examples="""\
  mercury friends suggestions ALICE
  mercury friends suggestions ALICE --count"""
)
@click.argument("user_id")
@page_options
@click.option(
    "--count", "count_only", is_flag=True, help="Only print the number of suggestions."
)
@click.pass_obj
def suggestions(
    app: AppContext, user_id: str, page: int, page_size: int | None, count_only: bool
) -> None:
    """List friends of friends who are not yet friends with USER_ID."""
    svc = ListingService(app.store)
    if count_only:
        app.emit(svc.friend_suggestions_count(user_id))
    else:
        app.emit(svc.friend_suggestions(user_id, **app.page_args(page, page_size)))
