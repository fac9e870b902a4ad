"""Command group: user lifecycle."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from mercury.commands._base import MercuryGroup, page_options
from mercury.services.result import ServiceResult
from mercury.services.users import UserService

if TYPE_CHECKING:
    from mercury.commands._context import AppContext

_USER_EXAMPLES = """\
  mercury user create Anna Nowak --mail anna@example.com --password '$2b$10$...'
  mercury user create Jan Kowalski --mail jan@example.com --issuer mercury --issuer-id kc-42
  mercury user get 3f2a...
  mercury user update 3f2a... --country Poland
  mercury user list --page 2 --size 50
  mercury user count
  mercury user delete 3f2a..."""


@click.group(cls=MercuryGroup, examples=_USER_EXAMPLES)
def user() -> None:
    """Create, inspect and remove users."""


@user.command(
    examples="""\
  mercury user create Anna Nowak --mail anna@example.com --password '$2b$10$...'
  mercury user create Jan Kowalski --mail jan@example.com --issuer mercury --issuer-id kc-42
  mercury -q user create Ola Lis --mail ola@example.com --password x --country Poland"""
)
@click.argument("first_name")
@click.argument("last_name")
@click.option("--mail", required=True, help="Mail address (unique per identity).")
@click.option("--country", default="", help="Country name.")
@click.option("--picture", "profile_picture", default="", help="Profile picture reference.")
@click.option("--password", default=None, help="Already-hashed password (native account).")
@click.option("--issuer", default=None, help="Identity provider (external account).")
@click.option("--issuer-id", default=None, help="Subject id at the identity provider.")
@click.pass_obj
def create(
    app: AppContext,
    first_name: str,
    last_name: str,
    mail: str,
    country: str,
    profile_picture: str,
    password: str | None,
    issuer: str | None,
    issuer_id: str | None,
) -> None:
    """Register a native (--password) or external (--issuer/--issuer-id) user."""
    identity: dict[str, Any]
    if password is not None and issuer is None and issuer_id is None:
        identity = {"kind": "native", "password": password}
    elif password is None and issuer is not None and issuer_id is not None:
        identity = {"kind": "external", "issuer": issuer, "issuer_id": issuer_id}
    else:
        app.emit(
            ServiceResult.failure(
                "create_user",
                "INVALID_USER",
                "Give either --password, or both --issuer and --issuer-id",
            )
        )
        return

    payload = {
        "first_name": first_name,
        "last_name": last_name,
        "mail": mail,
        "country": country,
        "profile_picture": profile_picture,
        "identity": identity,
    }
    app.emit(UserService(app.store).create_user(payload))


@user.command(
    examples="""\
  mercury user get 3f2a...
  mercury user get --mail anna@example.com"""
)
@click.argument("user_id", required=False, default="")
@click.option("--mail", default="", help="Look the user up by mail instead.")
@click.pass_obj
def get(app: AppContext, user_id: str, mail: str) -> None:
    """Show one user."""
    app.emit(UserService(app.store).get_user(user_id, mail=mail))


@user.command(
    examples="""\
  mercury user update 3f2a... --first-name Anna --last-name Lis
  mercury user update 3f2a... --country Germany"""
)
@click.argument("user_id")
@click.option("--first-name", default=None, help="New first name.")
@click.option("--last-name", default=None, help="New last name.")
@click.option("--country", default=None, help="New country.")
@click.option("--picture", "profile_picture", default=None, help="New profile picture.")
@click.option("--mail", default=None, help="New mail address.")
@click.pass_obj
def update(app: AppContext, user_id: str, **changes: str | None) -> None:
    """Change profile fields; changing a name recomputes its embedding."""
    supplied = {k: v for k, v in changes.items() if v is not None}
    app.emit(UserService(app.store).update_user(user_id, supplied))


@user.command(
    examples="""\
  mercury user delete 3f2a..."""
)
@click.argument("user_id")
@click.pass_obj
def delete(app: AppContext, user_id: str) -> None:
    """Delete a user and every relation it is part of."""
    app.emit(UserService(app.store).delete_user(user_id))


@user.command(
    "list",
    examples="""\
  mercury user list
  mercury user list --page 2 --size 50
  mercury --json user list""",
)
@page_options
@click.pass_obj
def list_cmd(app: AppContext, page: int, page_size: int | None) -> None:
    """List users ordered by id."""
    app.emit(UserService(app.store).list_users(**app.page_args(page, page_size)))


@user.command(
    examples="""\
  mercury user count"""
)
@click.pass_obj
def count(app: AppContext) -> None:
    """Count all users."""
    app.emit(UserService(app.store).count_users())
