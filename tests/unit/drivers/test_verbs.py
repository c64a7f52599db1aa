# tests/unit/drivers/test_verbs.py
"""Verb contract shared by every built-in driver.

Each test runs against MemoryDriver and SqlDriver (see the ``driver``
fixture in tests/conftest.py).
"""

from __future__ import annotations

import pytest

from contractual.contracts.auth import AccessScope
from contractual.contracts.errors import (
    ConflictError,
    DuplicateContentError,
    DuplicateIdError,
    ForbiddenWriteError,
    InvalidIdError,
    NotFoundError,
)
from contractual.contracts.identity import CallerIdentity
from contractual.drivers import DataDriver
from tests.conftest import note

ALL = AccessScope.unrestricted()
ALICE_ONLY = AccessScope(identity=CallerIdentity.of("alice"), owner_fields=("ownerId",))


async def _seed(driver: DataDriver, *records: dict[str, object]) -> None:
    for record in records:
        await driver.create("notes", ALL, record, "id")


class TestReads:
    @pytest.mark.asyncio
    async def test_get_by_id(self, driver: DataDriver) -> None:
        await _seed(driver, note("n1"))

        assert await driver.get_by_id("notes", ALL, "n1") == note("n1")

    @pytest.mark.asyncio
    async def test_get_by_id_missing_is_not_found(self, driver: DataDriver) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            await driver.get_by_id("notes", ALL, "missing")

        assert exc_info.value.code == 404

    @pytest.mark.asyncio
    async def test_collections_are_separate(self, driver: DataDriver) -> None:
        await _seed(driver, note("n1"))

        with pytest.raises(NotFoundError):
            await driver.get_by_id("other", ALL, "n1")

    @pytest.mark.asyncio
    async def test_get_by_ids_returns_present_ids_in_request_order(self, driver: DataDriver) -> None:
        await _seed(driver, note("n1", text="one"), note("n2", text="two"), note("n3", text="three"))

        records = await driver.get_by_ids("notes", ALL, ["n3", "missing", "n1"])

        assert [r["id"] for r in records] == ["n3", "n1"]

    @pytest.mark.asyncio
    async def test_get_by_ids_with_no_match_is_empty(self, driver: DataDriver) -> None:
        assert await driver.get_by_ids("notes", ALL, ["x", "y"]) == []
        assert await driver.get_by_ids("notes", ALL, []) == []

    @pytest.mark.asyncio
    async def test_get_all_in_insertion_order(self, driver: DataDriver) -> None:
        await _seed(driver, note("b", text="1"), note("a", text="2"), note("c", text="3"))

        assert [r["id"] for r in await driver.get_all("notes", ALL)] == ["b", "a", "c"]

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, driver: DataDriver) -> None:
        await _seed(driver, note("n1", tags=["x"]))

        fetched = await driver.get_by_id("notes", ALL, "n1")
        fetched["tags"].append("mutated")

        assert (await driver.get_by_id("notes", ALL, "n1"))["tags"] == ["x"]


class TestTextSearch:
    @pytest.mark.asyncio
    async def test_most_relevant_first(self, driver: DataDriver) -> None:
        await _seed(
            driver,
            note("n1", text="apple pie"),
            note("n2", text="apple apple crumble"),
            note("n3", text="banana bread"),
        )

        records = await driver.get_by_text("notes", ALL, "apple")

        assert [r["id"] for r in records] == ["n2", "n1"]

    @pytest.mark.asyncio
    async def test_ties_keep_creation_order(self, driver: DataDriver) -> None:
        await _seed(driver, note("late", text="pear"), note("early", text="pear tart"))

        records = await driver.get_by_text("notes", ALL, "pear")

        assert [r["id"] for r in records] == ["late", "early"]

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive(self, driver: DataDriver) -> None:
        await _seed(driver, note("n1", text="Apple"))

        assert [r["id"] for r in await driver.get_by_text("notes", ALL, "APPLE")] == ["n1"]

    @pytest.mark.asyncio
    async def test_field_names_do_not_match(self, driver: DataDriver) -> None:
        await _seed(driver, note("n1", text="nothing here"))

        assert await driver.get_by_text("notes", ALL, "ownerId") == []

    @pytest.mark.asyncio
    async def test_query_without_words_matches_nothing(self, driver: DataDriver) -> None:
        await _seed(driver, note("n1"))

        assert await driver.get_by_text("notes", ALL, "  %- ") == []

    @pytest.mark.asyncio
    async def test_search_folds_non_ascii_case(self, driver: DataDriver) -> None:
        await _seed(driver, note("n1", text="ÉCOLE Straße"), note("n2", text="ecole"))

        assert [r["id"] for r in await driver.get_by_text("notes", ALL, "école")] == ["n1"]
        assert [r["id"] for r in await driver.get_by_text("notes", ALL, "STRASSE straße")] == ["n1"]

    @pytest.mark.asyncio
    async def test_search_follows_replaced_text(self, driver: DataDriver) -> None:
        await _seed(driver, note("n1", text="Über"))
        await driver.replace("notes", ALL, "n1", note("n1", text="unter"))

        assert await driver.get_by_text("notes", ALL, "über") == []
        assert [r["id"] for r in await driver.get_by_text("notes", ALL, "UNTER")] == ["n1"]


class TestCreate:
    @pytest.mark.asyncio
    async def test_repeated_create_is_a_repost(self, driver: DataDriver) -> None:
        await _seed(driver, note("n1"))

        with pytest.raises(DuplicateContentError) as exc_info:
            await driver.create("notes", ALL, note("n1"), "id")

        assert exc_info.value.errors[0].startswith("Re-post rejected:")
        assert exc_info.value.code == 409

    @pytest.mark.asyncio
    async def test_id_collision_with_new_content(self, driver: DataDriver) -> None:
        await _seed(driver, note("n1", text="first"))

        with pytest.raises(DuplicateIdError) as exc_info:
            await driver.create("notes", ALL, note("n1", text="second"), "id")

        assert not exc_info.value.errors[0].startswith("Re-post rejected:")
        assert (await driver.get_by_id("notes", ALL, "n1"))["text"] == "first"

    @pytest.mark.asyncio
    async def test_conflicts_share_a_base_class(self, driver: DataDriver) -> None:
        await _seed(driver, note("n1"))

        with pytest.raises(ConflictError):
            await driver.create("notes", ALL, note("n1", text="other"), "id")

    @pytest.mark.asyncio
    async def test_record_without_id_is_rejected(self, driver: DataDriver) -> None:
        with pytest.raises(InvalidIdError):
            await driver.create("notes", ALL, {"ownerId": "alice", "text": "x"}, "id")

    @pytest.mark.asyncio
    async def test_non_string_id_is_rejected(self, driver: DataDriver) -> None:
        with pytest.raises(InvalidIdError):
            await driver.create("notes", ALL, {"id": 7, "text": "x"}, "id")

    @pytest.mark.asyncio
    async def test_custom_id_field(self, driver: DataDriver) -> None:
        await driver.create("notes", ALL, {"slug": "s1", "text": "x"}, "slug")

        assert await driver.get_by_id("notes", ALL, "s1") == {"slug": "s1", "text": "x"}

    @pytest.mark.asyncio
    async def test_deleted_content_can_be_created_again(self, driver: DataDriver) -> None:
        await _seed(driver, note("n1"))
        await driver.delete("notes", ALL, "n1")

        assert await driver.create("notes", ALL, note("n1"), "id") == note("n1")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("big", [2**53, 2**60, -(2**63)])
    async def test_integers_beyond_double_precision(self, driver: DataDriver, big: int) -> None:
        created = await driver.create("notes", ALL, note("n1", views=big), "id")

        assert created["views"] == big
        assert (await driver.get_by_id("notes", ALL, "n1"))["views"] == big

    @pytest.mark.asyncio
    async def test_values_round_trip_unchanged(self, driver: DataDriver) -> None:
        record = note("n1", score=1.0, ratio=0.1, nested={"z": 1, "a": [2.0, None]})

        await driver.create("notes", ALL, record, "id")
        stored = await driver.get_by_id("notes", ALL, "n1")

        assert stored == record
        assert isinstance(stored["score"], float)
        assert list(stored["nested"]) == ["z", "a"]


class TestReplaceAndMerge:
    @pytest.mark.asyncio
    async def test_replace_drops_omitted_fields(self, driver: DataDriver) -> None:
        await _seed(driver, note("n1", tags=["x"]))

        replaced = await driver.replace("notes", ALL, "n1", note("n1", text="new"))

        assert "tags" not in replaced
        assert await driver.get_by_id("notes", ALL, "n1") == note("n1", text="new")

    @pytest.mark.asyncio
    async def test_replace_is_idempotent(self, driver: DataDriver) -> None:
        await _seed(driver, note("n1"))
        record = note("n1", text="final", tags=["a"])

        first = await driver.replace("notes", ALL, "n1", record)
        second = await driver.replace("notes", ALL, "n1", record)

        assert first == second == await driver.get_by_id("notes", ALL, "n1")

    @pytest.mark.asyncio
    async def test_replace_keeps_position(self, driver: DataDriver) -> None:
        await _seed(driver, note("a", text="1"), note("b", text="2"))

        await driver.replace("notes", ALL, "a", note("a", text="changed"))

        assert [r["id"] for r in await driver.get_all("notes", ALL)] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_merge_keeps_omitted_fields(self, driver: DataDriver) -> None:
        await _seed(driver, note("n1", tags=["x"]))

        merged = await driver.merge("notes", ALL, "n1", {"text": "edited"})

        assert merged == note("n1", text="edited", tags=["x"])
        assert await driver.get_by_id("notes", ALL, "n1") == merged

    @pytest.mark.asyncio
    @pytest.mark.parametrize("verb", ["replace", "merge"])
    async def test_missing_record_is_not_found(self, driver: DataDriver, verb: str) -> None:
        with pytest.raises(NotFoundError):
            await getattr(driver, verb)("notes", ALL, "missing", note("missing"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("verb", ["replace", "merge"])
    async def test_id_cannot_change(self, driver: DataDriver, verb: str) -> None:
        await _seed(driver, note("n1"))

        with pytest.raises(InvalidIdError):
            await getattr(driver, verb)("notes", ALL, "n1", note("n2"))


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_one_returns_removed_record(self, driver: DataDriver) -> None:
        await _seed(driver, note("n1"))

        assert await driver.delete("notes", ALL, "n1") == [note("n1")]
        assert await driver.get_all("notes", ALL) == []

    @pytest.mark.asyncio
    async def test_delete_missing_id_is_not_found(self, driver: DataDriver) -> None:
        with pytest.raises(NotFoundError):
            await driver.delete("notes", ALL, "missing")

    @pytest.mark.asyncio
    async def test_delete_id_set_skips_missing(self, driver: DataDriver) -> None:
        await _seed(driver, note("a", text="1"), note("b", text="2"), note("c", text="3"))

        removed = await driver.delete("notes", ALL, ["a", "missing", "c"])

        assert sorted(r["id"] for r in removed) == ["a", "c"]
        assert [r["id"] for r in await driver.get_all("notes", ALL)] == ["b"]

    @pytest.mark.asyncio
    async def test_delete_by_field_filter(self, driver: DataDriver) -> None:
        await _seed(driver, note("a", owner="alice"), note("b", owner="bob"), note("c", owner="alice", text="x"))

        removed = await driver.delete("notes", ALL, {"ownerId": "alice"})

        assert sorted(r["id"] for r in removed) == ["a", "c"]

    @pytest.mark.asyncio
    async def test_delete_everything_visible(self, driver: DataDriver) -> None:
        await _seed(driver, note("a"), note("b", text="2"))

        assert len(await driver.delete("notes", ALL)) == 2
        assert await driver.get_all("notes", ALL) == []


class TestOwnershipScope:
    """Restricted scopes hide other callers' records from every verb."""

    @pytest.mark.asyncio
    async def test_reads_are_scoped(self, driver: DataDriver) -> None:
        await _seed(driver, note("a", owner="alice", text="shared word"), note("b", owner="bob", text="shared word"))

        assert [r["id"] for r in await driver.get_all("notes", ALICE_ONLY)] == ["a"]
        assert [r["id"] for r in await driver.get_by_ids("notes", ALICE_ONLY, ["a", "b"])] == ["a"]
        assert [r["id"] for r in await driver.get_by_text("notes", ALICE_ONLY, "shared")] == ["a"]
        with pytest.raises(NotFoundError):
            await driver.get_by_id("notes", ALICE_ONLY, "b")

    @pytest.mark.asyncio
    async def test_bulk_delete_is_scoped(self, driver: DataDriver) -> None:
        await _seed(driver, note("a", owner="alice"), note("b", owner="bob"))

        removed = await driver.delete("notes", ALICE_ONLY)

        assert [r["id"] for r in removed] == ["a"]
        assert [r["id"] for r in await driver.get_all("notes", ALL)] == ["b"]

    @pytest.mark.asyncio
    async def test_other_callers_record_cannot_be_changed(self, driver: DataDriver) -> None:
        await _seed(driver, note("b", owner="bob"))

        with pytest.raises(NotFoundError):
            await driver.merge("notes", ALICE_ONLY, "b", {"text": "hijacked"})
        with pytest.raises(NotFoundError):
            await driver.delete("notes", ALICE_ONLY, "b")

    @pytest.mark.asyncio
    async def test_merge_cannot_hand_a_record_to_another_owner(self, driver: DataDriver) -> None:
        await _seed(driver, note("a", owner="alice"))

        with pytest.raises(ForbiddenWriteError) as exc_info:
            await driver.merge("notes", ALICE_ONLY, "a", {"ownerId": "bob"})

        assert exc_info.value.code == 403
        assert await driver.get_by_id("notes", ALL, "a") == note("a", owner="alice")

    @pytest.mark.asyncio
    async def test_replace_cannot_hand_a_record_to_another_owner(self, driver: DataDriver) -> None:
        await _seed(driver, note("a", owner="alice"))

        with pytest.raises(ForbiddenWriteError):
            await driver.replace("notes", ALICE_ONLY, "a", note("a", owner="bob", text="gift"))

        assert await driver.get_by_id("notes", ALL, "a") == note("a", owner="alice")

    @pytest.mark.asyncio
    async def test_owner_may_edit_own_record(self, driver: DataDriver) -> None:
        await _seed(driver, note("a", owner="alice"))

        replaced = await driver.replace("notes", ALICE_ONLY, "a", note("a", owner="alice", text="mine"))

        assert replaced == note("a", owner="alice", text="mine")
