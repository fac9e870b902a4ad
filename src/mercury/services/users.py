"""UserService: user lifecycle: create, get, list, count, update, delete.

Name embeddings are derived on every write that touches a name, so the
search index always reflects the stored first and last name.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from mercury.domain.paging import page_count
from mercury.domain.users import ExternalIdentity, NewUser, User, UserUpdate, project_user
from mercury.infrastructure.database.vectors import VectorIndexError
from mercury.services._helpers import new_user_id, now_iso
from mercury.services.base import BaseService
from mercury.services.result import ServiceError, ServiceResult
from mercury.services.search import SearchService
from mercury.services.telemetry import traced

if TYPE_CHECKING:
    from mercury.infrastructure.store import StoreSession

logger = logging.getLogger(__name__)


def _not_found(op: str, user_id: str) -> ServiceResult:
    return ServiceResult(
        ok=False,
        op=op,
        error=ServiceError(code="NOT_FOUND", message=f"No user found with ID: {user_id}"),
    )


def _invalid(op: str, exc: ValidationError) -> ServiceResult:
    problems = {".".join(str(p) for p in err["loc"]): err["msg"] for err in exc.errors()}
    return ServiceResult.failure(
        op, "INVALID_USER", f"Invalid user data: {'; '.join(problems)}", flags={"errors": problems}
    )


def _index_failure(op: str, exc: VectorIndexError) -> ServiceResult:
    return ServiceResult.failure(op, "VECTORS_UNAVAILABLE", f"Name index unavailable: {exc}")


def _find_duplicate(s: StoreSession, mail: str, issuer: str | None) -> User | None:
    """Existing user that a registration with *mail* (and *issuer*) would clash with."""
    if issuer is None:
        return s.find_user(mail=mail)
    return s.find_user(mail=mail, identity_kind="external", issuer=issuer)


class UserService(BaseService):
    """Creates and maintains user records."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @traced
    def create_user(self, new_user: NewUser | dict[str, Any]) -> ServiceResult:
        """Register a user.

        Native users are unique by mail, external users by (mail, issuer).
        Registering an external user again with a new ``issuer_id`` refreshes
        the stored one and still reports ``ALREADY_EXISTS``.
        """
        op = "create_user"
        if not isinstance(new_user, NewUser):
            try:
                new_user = NewUser.model_validate(new_user)
            except ValidationError as exc:
                return _invalid(op, exc)
        identity = new_user.identity
        issuer = identity.issuer if isinstance(identity, ExternalIdentity) else None

        try:
            with self._store.transaction() as s:
                existing = _find_duplicate(s, new_user.mail, issuer)
                if existing is not None:
                    refreshed = False
                    if (
                        isinstance(identity, ExternalIdentity)
                        and isinstance(existing.identity, ExternalIdentity)
                        and existing.identity.issuer_id != identity.issuer_id
                    ):
                        s.update_user(existing.id, {"issuer_id": identity.issuer_id}, now_iso())
                        refreshed = True
                        logger.info("Refreshed issuer_id for user %s", existing.id)
                    return ServiceResult.failure(
                        op,
                        "ALREADY_EXISTS",
                        f"User already exists: {new_user.mail}",
                        flags={"user_id": existing.id, "issuer_id_refreshed": refreshed},
                    )

                embedded = SearchService(self._store).generate_name_embedding(
                    new_user.first_name, new_user.last_name
                )
                if not embedded.ok:
                    return embedded.model_copy(update={"op": op})

                user = User(
                    id=new_user_id(),
                    **new_user.model_dump(exclude={"identity"}),
                    identity=identity,
                    name_embedding=embedded.data["embedding"],
                )
                s.insert_user(user, now_iso())
        except VectorIndexError as exc:
            return _index_failure(op, exc)

        logger.info("Created user %s (%s)", user.id, identity.kind)
        return ServiceResult(ok=True, op=op, data={"id": user.id, "user": project_user(user)})

    @traced
    def update_user(self, user_id: str, update: UserUpdate | dict[str, Any]) -> ServiceResult:
        """Overwrite the supplied profile fields of one user.

        Supplying either name recomputes the name embedding from the merged
        first and last name.
        """
        op = "update_user"
        if not isinstance(update, UserUpdate):
            try:
                update = UserUpdate.model_validate(update)
            except ValidationError as exc:
                return _invalid(op, exc)
        changes: dict[str, Any] = update.changes()
        warnings: list[str] = []

        try:
            with self._store.transaction() as s:
                current = s.find_user(id=user_id)
                if current is None:
                    return _not_found(op, user_id)
                if not changes:
                    warnings.append("No fields to update")
                    return ServiceResult(
                        ok=True,
                        op=op,
                        data={"id": user_id, "user": project_user(current), "fields_changed": []},
                        warnings=warnings,
                    )

                if "mail" in changes and changes["mail"] != current.mail:
                    identity = current.identity
                    issuer = identity.issuer if isinstance(identity, ExternalIdentity) else None
                    clash = _find_duplicate(s, changes["mail"], issuer)
                    if clash is not None and clash.id != user_id:
                        return ServiceResult.failure(
                            op,
                            "ALREADY_EXISTS",
                            f"Mail already in use: {changes['mail']}",
                            flags={"user_id": clash.id},
                        )

                values = dict(changes)
                if update.touches_name:
                    embedded = SearchService(self._store).generate_name_embedding(
                        changes.get("first_name", current.first_name),
                        changes.get("last_name", current.last_name),
                    )
                    if not embedded.ok:
                        return embedded.model_copy(update={"op": op})
                    values["name_embedding"] = embedded.data["embedding"]

                s.update_user(user_id, values, now_iso())
                updated = current.model_copy(update=values)
        except VectorIndexError as exc:
            return _index_failure(op, exc)

        logger.debug("Updated user %s: %s", user_id, sorted(changes))
        return ServiceResult(
            ok=True,
            op=op,
            data={"id": user_id, "user": project_user(updated), "fields_changed": sorted(changes)},
        )

    @traced
    def delete_user(self, user_id: str) -> ServiceResult:
        """Remove a user together with every invite and friendship it is part of."""
        op = "delete_user"
        with self._store.transaction() as s:
            if not s.delete_user(user_id):
                return _not_found(op, user_id)
        logger.info("Deleted user %s", user_id)
        return ServiceResult(ok=True, op=op, data={"id": user_id, "deleted": True})

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @traced
    def get_user(self, user_id: str = "", *, mail: str = "") -> ServiceResult:
        """Look a user up by id or by mail."""
        op = "get_user"
        props = {k: v for k, v in (("id", user_id), ("mail", mail)) if v}
        if not props:
            return ServiceResult.failure(op, "INVALID_USER", "Give a user id or a mail")
        with self._store.session() as s:
            user = s.find_user(**props)
        if user is None:
            return _not_found(op, user_id or mail)
        return ServiceResult(ok=True, op=op, data={"id": user.id, "user": project_user(user)})

    @traced
    def list_users(self, *, page_index: int = 0, page_size: int = 100) -> ServiceResult:
        """One page of all users, ordered by id."""
        op = "list_users"
        checked = self._check_page(op, page_index, page_size)
        if isinstance(checked, ServiceResult):
            return checked
        with self._store.session() as s:
            found = s.list_users(skip=checked.skip, limit=checked.limit)
            total = s.count_users()
        items = [project_user(u) for u in found]
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "items": items,
                "count": len(items),
                "total": total,
                "page_index": checked.page_index,
                "page_size": checked.page_size,
                "page_count": page_count(total, checked.page_size),
            },
        )

    @traced
    def count_users(self) -> ServiceResult:
        with self._store.session() as s:
            total = s.count_users()
        return ServiceResult(ok=True, op="count_users", data={"count": total})
