"""BaseService: abstract foundation for all mercury services.

Every service receives a :class:`GraphStore` at construction time. The store
provides request-scoped connections to the graph and the word-vector table.
Services own their transaction boundaries via ``self._store.transaction()``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from mercury.domain.paging import Page
from mercury.services.result import ServiceResult

if TYPE_CHECKING:
    from mercury.infrastructure.store import GraphStore

logger = logging.getLogger(__name__)


class BaseService:
    """Abstract base for all service-layer classes.

    Usage::

        class RelationshipService(BaseService):
            def delete_friend(self, u1: str, u2: str) -> ServiceResult:
                with self._store.transaction() as s:
                    ...
    """

    def __init__(self, store: GraphStore) -> None:
        self._store = store

    def _check_page(self, op: str, page_index: int, page_size: int) -> Page | ServiceResult:
        """Validate a page request against the configured maximum size.

        Returns the :class:`Page` on success or a failed ``INVALID_PAGE`` result.
        """
        max_size = self._store.settings.paging.max_page_size
        if page_index < 0 or page_size < 1 or page_size > max_size:
            logger.debug("Rejected page index=%d size=%d", page_index, page_size)
            return ServiceResult.failure(
                op,
                "INVALID_PAGE",
                f"Invalid page: index must be >= 0 and size within 1..{max_size}",
                flags={"page_index": page_index, "page_size": page_size},
            )
        return Page(page_index=page_index, page_size=page_size)
