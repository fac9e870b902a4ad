"""User records and the public projection handed to callers.

A user is exactly one of two variants, carried in the ``identity`` field:

- native: the account is owned locally and stores a hashed ``password``.
- external: the account is owned by an identity provider and stores
  ``issuer`` + ``issuer_id``.

INVARIANT: ``name_embedding``, ``password``, ``issuer`` and ``issuer_id``
never leave the core. Callers only ever see :func:`project_user` output.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

PUBLIC_FIELDS: tuple[str, ...] = (
    "id",
    "first_name",
    "last_name",
    "country",
    "profile_picture",
    "mail",
)


class NativeIdentity(BaseModel):
    """Locally owned account. ``password`` is an opaque, already-hashed string."""

    model_config = {"frozen": True}

    kind: Literal["native"] = "native"
    password: str = Field(min_length=1)


class ExternalIdentity(BaseModel):
    """Account owned by an external identity provider."""

    model_config = {"frozen": True}

    kind: Literal["external"] = "external"
    issuer: str = Field(min_length=1)
    issuer_id: str = Field(min_length=1)


Identity = Annotated[NativeIdentity | ExternalIdentity, Field(discriminator="kind")]


class UserProfile(BaseModel):
    """User-supplied profile fields shared by both variants."""

    model_config = {"frozen": True}

    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    country: str = ""
    profile_picture: str = ""
    mail: str = Field(min_length=1)


class NewUser(UserProfile):
    """Registration payload: profile plus exactly one identity variant."""

    identity: Identity


class UserUpdate(BaseModel):
    """Partial profile update. Unset fields keep their stored value."""

    model_config = {"frozen": True}

    first_name: str | None = Field(default=None, min_length=1)
    last_name: str | None = Field(default=None, min_length=1)
    country: str | None = None
    profile_picture: str | None = None
    mail: str | None = Field(default=None, min_length=1)

    def changes(self) -> dict[str, Any]:
        """Return only the fields the caller actually supplied."""
        return self.model_dump(exclude_none=True)

    @property
    def touches_name(self) -> bool:
        return self.first_name is not None or self.last_name is not None


class User(UserProfile):
    """Stored user record, including private fields."""

    id: str
    identity: Identity
    name_embedding: list[float] = Field(default_factory=list)

    @property
    def is_native(self) -> bool:
        return isinstance(self.identity, NativeIdentity)


def project_user(user: User) -> dict[str, Any]:
    """Strip private fields from *user*, returning the caller-facing dict.

    Native users lose ``password`` and ``name_embedding``; external users
    lose ``issuer``, ``issuer_id`` and ``name_embedding``. Both end up with
    exactly :data:`PUBLIC_FIELDS`.
    """
    data = user.model_dump(include=set(PUBLIC_FIELDS))
    return {key: data[key] for key in PUBLIC_FIELDS}
