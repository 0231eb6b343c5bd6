"""Tests for record reconciliation and deck planning."""

import pytest

from siyuan_anki_sync.sync.reconciler import is_stale, plan_decks, reconcile


def _map(*records):
    return {r.id: r for r in records}


class TestReconcile:
    """Tests for the create/update/delete diff."""

    def test_buckets_cover_union_and_are_disjoint(self, make_record) -> None:
        source = _map(make_record("A"), make_record("B"), make_record("D"))
        dest = _map(
            make_record("B", destination_note_id=2, updated_at="20230101000000"),
            make_record("C", destination_note_id=3),
            make_record("D", destination_note_id=4),
        )

        diff = reconcile(source, dest)

        create = {r.id for r in diff.create}
        update = {r.id for r in diff.update}
        delete = {r.id for r in diff.delete}
        unchanged = set(diff.unchanged)
        assert create | update | delete | unchanged == set(source) | set(dest)
        buckets = [create, update, delete, unchanged]
        assert sum(len(b) for b in buckets) == len(set(source) | set(dest))

    def test_scenario_stale_record(self, make_record) -> None:
        source = _map(make_record("A"), make_record("B", updated_at="20240201000000"))
        dest = _map(
            make_record("B", destination_note_id=20, updated_at="20240101000000"),
            make_record("C", destination_note_id=30),
        )

        diff = reconcile(source, dest)

        assert [r.id for r in diff.create] == ["A"]
        assert [r.id for r in diff.update] == ["B"]
        assert [r.id for r in diff.delete] == ["C"]

    def test_scenario_fresh_record(self, make_record) -> None:
        source = _map(make_record("A"), make_record("B"))
        dest = _map(make_record("B", destination_note_id=20), make_record("C"))

        diff = reconcile(source, dest)

        assert diff.update == []
        assert diff.unchanged == ["B"]

    def test_deck_change_triggers_update(self, make_record) -> None:
        source = _map(make_record("B", deck_path="Root::NB::New"))
        dest = _map(make_record("B", deck_path="Root::NB::Old", destination_note_id=7))

        diff = reconcile(source, dest)

        assert [r.id for r in diff.update] == ["B"]

    def test_update_carries_destination_ids(self, make_record) -> None:
        source = _map(make_record("B", updated_at="20240301000000"))
        dest = _map(
            make_record("B", destination_note_id=42, destination_card_ids=[7, 8])
        )

        diff = reconcile(source, dest)

        updated = diff.update[0]
        assert updated.destination_note_id == 42
        assert updated.destination_card_ids == [7, 8]
        assert source["B"].destination_note_id is None

    def test_idempotent_after_applying(self, make_record) -> None:
        source = _map(make_record("A"), make_record("B"))
        first = reconcile(source, {})
        # Anki now holds exactly the source records
        dest = {
            r.id: r.model_copy(update={"destination_note_id": i})
            for i, r in enumerate(first.create)
        }

        second = reconcile(source, dest)

        assert second.create == []
        assert second.update == []
        assert second.delete == []

    def test_force_update(self, make_record) -> None:
        source = _map(make_record("B"))
        dest = _map(make_record("B", destination_note_id=1))

        assert reconcile(source, dest, force_update=True).update[0].id == "B"

    def test_order_follows_inputs(self, make_record) -> None:
        source = _map(make_record("Z"), make_record("A"), make_record("M"))
        assert [r.id for r in reconcile(source, {}).create] == ["Z", "A", "M"]

    def test_empty_sides(self, make_record) -> None:
        diff = reconcile({}, _map(make_record("C")))
        assert [r.id for r in diff.delete] == ["C"]
        assert not reconcile({}, {}).has_changes

    @pytest.mark.parametrize(
        ("source_updated", "dest_updated", "expected"),
        [
            ("20240102000000", "20240101000000", True),
            ("20240101000000", "20240101000000", False),
            ("20231231235959", "20240101000000", False),
            ("20240101000000", "", True),
        ],
    )
    def test_is_stale_timestamps(
        self, make_record, source_updated, dest_updated, expected
    ) -> None:
        source = make_record("X", updated_at=source_updated)
        dest = make_record("X", updated_at=dest_updated)
        assert is_stale(source, dest) is expected


class TestPlanDecks:
    """Tests for deck creation and deletion planning."""

    def test_new_deck_is_created(self, make_record) -> None:
        source = _map(make_record("A"), make_record("B"))
        diff = reconcile(source, {})

        plan = plan_decks(diff, source, ["Default"], root_deck="Root")

        assert plan.to_create == ["Root::NB::Topic"]
        assert plan.used == {"Root::NB::Topic"}

    def test_existing_deck_not_recreated(self, make_record) -> None:
        source = _map(make_record("A"))
        diff = reconcile(source, {})

        plan = plan_decks(diff, source, ["Root", "Root::NB", "Root::NB::Topic"], "Root")

        assert plan.to_create == []

    def test_empty_deck_deleted_but_ancestor_kept(self, make_record) -> None:
        source = _map(make_record("A"))
        diff = reconcile(source, {})
        existing = ["Default", "Root", "Root::NB", "Root::NB::Old", "Root::NB::Topic"]

        plan = plan_decks(diff, source, existing, "Root", preserve=["Default"])

        assert plan.to_delete == ["Root::NB::Old"]

    def test_used_deck_kept_even_without_changes(self, make_record) -> None:
        source = _map(make_record("A", deck_path="Root::NB::Stable"))
        dest = _map(
            make_record("A", deck_path="Root::NB::Stable", destination_note_id=1)
        )
        diff = reconcile(source, dest)
        existing = ["Root", "Root::NB", "Root::NB::Stable"]

        plan = plan_decks(diff, source, existing, "Root")

        assert diff.unchanged == ["A"]
        assert plan.to_delete == []

    def test_similar_prefix_is_not_an_ancestor(self, make_record) -> None:
        source = _map(make_record("A", deck_path="Root::NB::Topic"))
        diff = reconcile(source, {})
        existing = ["Root", "Root::NB", "Root::NB::Top", "Root::NB::Topic"]

        plan = plan_decks(diff, source, existing, "Root")

        assert plan.to_delete == ["Root::NB::Top"]

    def test_decks_outside_root_and_preserved_decks_untouched(self, make_record) -> None:
        source = _map(make_record("A"))
        diff = reconcile(source, {})
        existing = ["Default", "Spanish", "Root::Keep", "Root::NB::Topic"]

        plan = plan_decks(diff, source, existing, "Root", preserve=["Root::Keep"])

        assert plan.to_delete == []

    def test_deck_of_deleted_record_becomes_empty(self, make_record) -> None:
        source = _map(make_record("A"))
        dest = _map(
            make_record("A", destination_note_id=1),
            make_record("C", deck_path="Root::NB::Gone", destination_note_id=3),
        )
        diff = reconcile(source, dest)

        plan = plan_decks(
            diff, source, ["Root", "Root::NB", "Root::NB::Gone", "Root::NB::Topic"], "Root"
        )

        assert plan.to_delete == ["Root::NB::Gone"]

    def test_ancestor_of_preserved_deck_kept(self, make_record) -> None:
        source = _map(make_record("A", deck_path="Root::NB::Topic"))
        diff = reconcile(source, {})
        existing = ["Root::Archive", "Root::Archive::Keep", "Root::NB::Topic"]

        plan = plan_decks(diff, source, existing, "Root", preserve=["Root::Archive::Keep"])

        assert plan.to_delete == []
