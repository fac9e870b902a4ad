"""ListingService: paginated friend, request and suggestion listings.

Each listing validates the page, checks the subject user exists (a missing
subject is ``NOT_FOUND``, never an empty page), and returns one window plus
the total and page count. Each listing has a ``*_count`` twin.

Ordering:
- friends, suggestions: user id
- incoming requests: last name, first name, then id
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from mercury.domain.paging import page_count
from mercury.domain.users import User, project_user
from mercury.services.base import BaseService
from mercury.services.result import ServiceError, ServiceResult
from mercury.services.telemetry import traced

if TYPE_CHECKING:
    from mercury.infrastructure.store import StoreSession

_Lister = Callable[["StoreSession", str, int, int], list[User]]
_Counter = Callable[["StoreSession", str], int]

_VIEWS: dict[str, tuple[_Lister, _Counter]] = {
    "friends": (
        lambda s, uid, skip, limit: s.list_friends(uid, skip=skip, limit=limit),
        lambda s, uid: s.count_friends(uid),
    ),
    "friend_requests": (
        lambda s, uid, skip, limit: s.list_incoming_invites(uid, skip=skip, limit=limit),
        lambda s, uid: s.count_incoming_invites(uid),
    ),
    "friend_suggestions": (
        lambda s, uid, skip, limit: s.list_suggestions(uid, skip=skip, limit=limit),
        lambda s, uid: s.count_suggestions(uid),
    ),
}


def _not_found(op: str, user_id: str) -> ServiceResult:
    return ServiceResult(
        ok=False,
        op=op,
        error=ServiceError(code="NOT_FOUND", message=f"No user found with ID: {user_id}"),
    )


class ListingService(BaseService):
    """Paged relation views around one subject user."""

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    @traced
    def friends(self, user_id: str, *, page_index: int = 0, page_size: int = 100) -> ServiceResult:
        """Users connected to *user_id* by a friendship."""
        return self._list("friends", user_id, page_index, page_size)

    @traced
    def friend_requests(
        self, user_id: str, *, page_index: int = 0, page_size: int = 100
    ) -> ServiceResult:
        """Users with a pending invite to *user_id*."""
        return self._list("friend_requests", user_id, page_index, page_size)

    @traced
    def friend_suggestions(
        self, user_id: str, *, page_index: int = 0, page_size: int = 100
    ) -> ServiceResult:
        """Friends of friends who are not already friends with *user_id*."""
        return self._list("friend_suggestions", user_id, page_index, page_size)

    # ------------------------------------------------------------------
    # Counts
    # ------------------------------------------------------------------

    @traced
    def friends_count(self, user_id: str) -> ServiceResult:
        return self._count("friends", user_id)

    @traced
    def friend_requests_count(self, user_id: str) -> ServiceResult:
        return self._count("friend_requests", user_id)

    @traced
    def friend_suggestions_count(self, user_id: str) -> ServiceResult:
        return self._count("friend_suggestions", user_id)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _list(self, view: str, user_id: str, page_index: int, page_size: int) -> ServiceResult:
        checked = self._check_page(view, page_index, page_size)
        if isinstance(checked, ServiceResult):
            return checked
        lister, counter = _VIEWS[view]

        with self._store.session() as s:
            if not s.user_exists(user_id):
                return _not_found(view, user_id)
            found = lister(s, user_id, checked.skip, checked.limit)
            total = counter(s, user_id)

        items = [project_user(u) for u in found]
        return ServiceResult(
            ok=True,
            op=view,
            data={
                "user_id": user_id,
                "items": items,
                "count": len(items),
                "total": total,
                "page_index": checked.page_index,
                "page_size": checked.page_size,
                "page_count": page_count(total, checked.page_size),
            },
        )

    def _count(self, view: str, user_id: str) -> ServiceResult:
        op = f"{view}_count"
        _, counter = _VIEWS[view]
        with self._store.session() as s:
            if not s.user_exists(user_id):
                return _not_found(op, user_id)
            total = counter(s, user_id)
        return ServiceResult(ok=True, op=op, data={"user_id": user_id, "count": total})
