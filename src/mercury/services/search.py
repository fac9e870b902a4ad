"""SearchService: embedding-based name search and name embeddings.

An empty phrase lists users filtered by country; a non-empty phrase is
embedded as a single token and matched against the stored name
embeddings through the sqlite-vec index. Results are post-filtered
(country, self-exclusion) and then windowed, so a page may come back
shorter than ``page_size`` when the nearest neighbours are mostly
filtered out.
"""

from __future__ import annotations

import logging
from typing import Any

from mercury.domain.paging import Page, page_count
from mercury.domain.users import User, project_user
from mercury.infrastructure.database.vectors import VectorIndexError
from mercury.services.base import BaseService
from mercury.services.result import ServiceResult
from mercury.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)

EMPTY_PHRASE_SCORE = 1.0


def mean_vector(first: list[float], second: list[float]) -> list[float]:
    """Element-wise arithmetic mean of two equal-length vectors.

    Examples:
        >>> mean_vector([1.0, 2.0], [3.0, 0.0])
        [2.0, 1.0]
    """
    if len(first) != len(second):
        msg = f"Vector lengths differ: {len(first)} != {len(second)}"
        raise ValueError(msg)
    return [(a + b) / 2 for a, b in zip(first, second, strict=True)]


def _matches(user: User, country: str, exclude_id: str) -> bool:
    if country and user.country != country:
        return False
    return not (exclude_id and user.id == exclude_id)


def _item(user: User, score: float) -> dict[str, Any]:
    return {**project_user(user), "score": score}


class SearchService(BaseService):
    """Nearest-neighbour name search over the ``user-names`` vector index."""

    def _vectors_unavailable(self, op: str) -> ServiceResult | None:
        if self._store.vectors.is_available():
            return None
        return ServiceResult.failure(
            op,
            "VECTORS_UNAVAILABLE",
            "No word-vector file found; set [search] vectors_path",
            flags={"vectors_path": str(self._store.settings.vectors_path or "")},
        )

    @traced
    def generate_name_embedding(self, first_name: str, last_name: str) -> ServiceResult:
        """Average the first- and last-name vectors into one name embedding.

        Fails with ``INVALID_NAME`` if either token is out of vocabulary;
        ``first_name_correct`` / ``last_name_correct`` say which.
        """
        op = "generate_name_embedding"
        unavailable = self._vectors_unavailable(op)
        if unavailable is not None:
            return unavailable

        vectors = self._store.vectors
        first_vec = vectors.embed(first_name)
        last_vec = vectors.embed(last_name)
        flags = {
            "first_name_correct": bool(first_vec),
            "last_name_correct": bool(last_vec),
        }
        if not (first_vec and last_vec):
            return ServiceResult.failure(
                op,
                "INVALID_NAME",
                f"No word vector for name: {first_name!r} {last_name!r}",
                flags=flags,
            )
        return ServiceResult(
            ok=True,
            op=op,
            data={**flags, "embedding": mean_vector(first_vec, last_vec)},
        )

    @traced
    def search(
        self,
        phrase: str = "",
        *,
        country: str = "",
        page_index: int = 0,
        page_size: int = 100,
        exclude_id: str = "",
    ) -> ServiceResult:
        """Find users whose names are close to *phrase*.

        Data: ``items`` (projection + ``score``, best first), ``count``,
        ``total`` and ``page_count``.
        """
        op = "search"
        checked = self._check_page(op, page_index, page_size)
        if isinstance(checked, ServiceResult):
            return checked
        page = checked

        phrase = phrase.strip()
        if not phrase:
            items, total = self._list_all(page, country, exclude_id)
        else:
            unavailable = self._vectors_unavailable(op)
            if unavailable is not None:
                return unavailable
            vector = self._store.vectors.embed(phrase)
            if not vector:
                return ServiceResult.failure(
                    op,
                    "SEARCH_UNSUPPORTED",
                    f"Phrase has no word vector: {phrase!r}",
                    flags={"phrase": phrase},
                )
            try:
                items, total = self._nearest(vector, page, country, exclude_id)
            except VectorIndexError as exc:
                return ServiceResult.failure(
                    op, "VECTORS_UNAVAILABLE", f"Name index unavailable: {exc}"
                )

        logger.debug("search phrase=%r country=%r -> %d/%d", phrase, country, len(items), total)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "phrase": phrase,
                "country": country,
                "page_index": page.page_index,
                "page_size": page.page_size,
                "items": items,
                "count": len(items),
                "total": total,
                "page_count": page_count(total, page.page_size),
            },
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _list_all(
        self, page: Page, country: str, exclude_id: str
    ) -> tuple[list[dict[str, Any]], int]:
        with self._store.session() as s:
            found = s.list_users(
                country=country, exclude_id=exclude_id, skip=page.skip, limit=page.limit
            )
            total = s.count_users(country=country, exclude_id=exclude_id)
        return [_item(u, EMPTY_PHRASE_SCORE) for u in found], total

    def _nearest(
        self, vector: list[float], page: Page, country: str, exclude_id: str
    ) -> tuple[list[dict[str, Any]], int]:
        index_name = self._store.settings.search.index_name
        with self._store.session() as s:
            with trace_span("nearest_neighbors") as span:
                candidates = s.nearest_neighbors(vector, page.horizon, index_name=index_name)
                if span:
                    span.annotate("candidates", len(candidates))
            total = s.count_embedded_users(country=country, exclude_id=exclude_id)

        kept = [(u, score) for u, score in candidates if _matches(u, country, exclude_id)]
        window = kept[page.skip : page.skip + page.limit]
        return [_item(u, score) for u, score in window], total
