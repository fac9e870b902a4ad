"""Tests for SearchService: name search and name embeddings."""

from __future__ import annotations

import pytest

from mercury.infrastructure.store import GraphStore
from mercury.services.search import SearchService, mean_vector
from mercury.services.users import UserService


def _create_user(store: GraphStore, first: str, last: str, country: str) -> str:
    result = UserService(store).create_user(
        {
            "first_name": first,
            "last_name": last,
            "country": country,
            "mail": f"{first}.{last}@example.com".lower(),
            "identity": {"kind": "native", "password": "hash"},
        }
    )
    assert result.ok, result.error
    return str(result.data["id"])


@pytest.fixture
def people(store: GraphStore) -> dict[str, str]:
    """Three users in Poland, one in Germany."""
    return {
        "anna": _create_user(store, "Anna", "Nowak", "Poland"),
        "anne": _create_user(store, "Anne", "Smith", "Poland"),
        "jan": _create_user(store, "Jan", "Kowalski", "Poland"),
        "ola": _create_user(store, "Ola", "Lis", "Germany"),
    }


class TestMeanVector:
    def test_mean(self) -> None:
        assert mean_vector([1.0, 2.0], [3.0, 0.0]) == [2.0, 1.0]

    def test_length_mismatch(self) -> None:
        with pytest.raises(ValueError, match="lengths differ"):
            mean_vector([1.0], [1.0, 2.0])


class TestGenerateNameEmbedding:
    def test_success(self, store: GraphStore) -> None:
        result = SearchService(store).generate_name_embedding("Jan", "Kowalski")
        assert result.ok
        assert result.data["embedding"] == pytest.approx([0.05, 0.95, 0.15])

    def test_reports_which_name_failed(self, store: GraphStore) -> None:
        result = SearchService(store).generate_name_embedding("Zzyzx", "Nowak")
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "INVALID_NAME"
        assert result.error.detail == {"first_name_correct": False, "last_name_correct": True}


class TestEmptyPhrase:
    def test_country_filter(self, store: GraphStore, people: dict[str, str]) -> None:
        result = SearchService(store).search("", country="Poland", page_index=0, page_size=100)
        assert result.ok
        items = result.data["items"]
        assert len(items) == 3
        assert all(item["score"] == 1.0 for item in items)
        assert all(item["country"] == "Poland" for item in items)
        assert result.data["total"] == 3
        assert result.data["page_count"] == 1

    def test_excludes_self(self, store: GraphStore, people: dict[str, str]) -> None:
        result = SearchService(store).search(exclude_id=people["anna"])
        ids = [item["id"] for item in result.data["items"]]
        assert people["anna"] not in ids
        assert result.data["total"] == 3

    def test_whitespace_is_empty(self, store: GraphStore, people: dict[str, str]) -> None:
        result = SearchService(store).search("   ", page_size=2)
        assert result.data["count"] == 2
        assert result.data["page_count"] == 2

    def test_no_match_has_zero_pages(self, store: GraphStore, people: dict[str, str]) -> None:
        result = SearchService(store).search("", country="Narnia")
        assert result.ok
        assert result.data["items"] == []
        assert result.data["total"] == 0
        assert result.data["page_count"] == 0

    def test_projection_only(self, store: GraphStore, people: dict[str, str]) -> None:
        item = SearchService(store).search().data["items"][0]
        assert set(item) == {
            "id",
            "first_name",
            "last_name",
            "country",
            "profile_picture",
            "mail",
            "score",
        }


class TestPhraseSearch:
    def test_best_match_first(self, store: GraphStore, people: dict[str, str]) -> None:
        result = SearchService(store).search("anna")
        assert result.ok
        ids = [item["id"] for item in result.data["items"]]
        assert ids[:2] == [people["anna"], people["anne"]]
        scores = [item["score"] for item in result.data["items"]]
        assert scores == sorted(scores, reverse=True)
        assert all(0.0 <= s <= 1.0 for s in scores)

    def test_case_insensitive(self, store: GraphStore, people: dict[str, str]) -> None:
        result = SearchService(store).search("  ANNA ")
        assert result.data["items"][0]["id"] == people["anna"]

    def test_excludes_self(self, store: GraphStore, people: dict[str, str]) -> None:
        result = SearchService(store).search("anna", exclude_id=people["anna"])
        ids = [item["id"] for item in result.data["items"]]
        assert people["anna"] not in ids
        assert ids[0] == people["anne"]

    def test_country_post_filter(self, store: GraphStore, people: dict[str, str]) -> None:
        result = SearchService(store).search("anna", country="Germany")
        assert [item["id"] for item in result.data["items"]] == [people["ola"]]
        assert result.data["total"] == 1

    def test_short_page_when_neighbours_filtered(
        self, store: GraphStore, people: dict[str, str]
    ) -> None:
        result = SearchService(store).search("anna", country="Germany", page_size=1)
        assert result.ok
        assert result.data["items"] == []
        assert result.data["total"] == 1

    def test_second_page(self, store: GraphStore, people: dict[str, str]) -> None:
        result = SearchService(store).search("anna", page_index=1, page_size=1)
        assert [item["id"] for item in result.data["items"]] == [people["anne"]]
        assert result.data["page_count"] == 4

    def test_unsupported_phrase(self, store: GraphStore, people: dict[str, str]) -> None:
        result = SearchService(store).search("zzyzx")
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "SEARCH_UNSUPPORTED"

    def test_multi_word_phrase_is_one_token(
        self, store: GraphStore, people: dict[str, str]
    ) -> None:
        result = SearchService(store).search("anna nowak")
        assert result.error is not None
        assert result.error.code == "SEARCH_UNSUPPORTED"


class TestPaging:
    @pytest.mark.parametrize(("index", "size"), [(-1, 10), (0, 0), (0, 1001)])
    def test_invalid_page(self, store: GraphStore, index: int, size: int) -> None:
        result = SearchService(store).search(page_index=index, page_size=size)
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "INVALID_PAGE"

    def test_empty_database(self, store: GraphStore) -> None:
        result = SearchService(store).search("anna")
        assert result.ok
        assert result.data["items"] == []
        assert result.data["page_count"] == 0


class TestNameIndex:
    def test_deleted_user_leaves_results(self, store: GraphStore, people: dict[str, str]) -> None:
        assert UserService(store).delete_user(people["anna"]).ok
        ids = [item["id"] for item in SearchService(store).search("anna").data["items"]]
        assert people["anna"] not in ids
        assert ids[0] == people["anne"]

    def test_renamed_user_is_reindexed(self, store: GraphStore, people: dict[str, str]) -> None:
        renamed = UserService(store).update_user(people["jan"], {"first_name": "Anna"})
        assert renamed.ok
        ranked = [item["id"] for item in SearchService(store).search("anna").data["items"]]
        assert ranked == [people["anna"], people["anne"], people["jan"], people["ola"]]

    def test_extension_missing(
        self, store: GraphStore, people: dict[str, str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("mercury.infrastructure.store.vec_loaded", lambda conn: False)
        result = SearchService(store).search("anna")
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "VECTORS_UNAVAILABLE"

    def test_empty_phrase_does_not_need_the_index(
        self, store: GraphStore, people: dict[str, str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("mercury.infrastructure.store.vec_loaded", lambda conn: False)
        assert SearchService(store).search("").data["total"] == 4
