# ABOUTME: Tests for entry fingerprinting and new-entry detection.
# ABOUTME: Verifies ordering, determinism and the seen-set retention cap.

from datetime import UTC, datetime

from feed_relay.feeds.dedup import HASH_PREFIX, diff, fingerprint, trim
from feed_relay.models import Entry, FeedSnapshot


class TestFingerprint:
    """Tests for fingerprint()."""

    def test_prefers_guid(self) -> None:
        entry = Entry(guid="urn:1", link="https://example.com/1", title="One")
        assert fingerprint(entry) == "urn:1"

    def test_falls_back_to_link(self) -> None:
        entry = Entry(guid="  ", link="https://example.com/1", title="One")
        assert fingerprint(entry) == "https://example.com/1"

    def test_falls_back_to_title(self) -> None:
        assert fingerprint(Entry(title="Only a title")) == "Only a title"

    def test_unidentifiable_entry_uses_content_hash(self) -> None:
        entry = Entry(
            description="No identifiers here",
            published_at=datetime(2026, 1, 2, 3, 4, tzinfo=UTC),
        )
        key = fingerprint(entry)
        assert key.startswith(HASH_PREFIX)
        assert len(key) == len(HASH_PREFIX) + 64

    def test_content_hash_is_deterministic(self) -> None:
        """Structurally identical entries always fingerprint identically."""
        first = Entry(description="same", author_name="Ann")
        second = Entry(description="same", author_name="Ann")
        assert fingerprint(first) == fingerprint(second)
        assert fingerprint(first) == fingerprint(first)

    def test_content_hash_is_a_fixed_value(self) -> None:
        """The hash must not depend on the process (no salted hash())."""
        import hashlib

        expected = hashlib.sha256(b'["","","","body",""]').hexdigest()
        assert fingerprint(Entry(description="body")) == HASH_PREFIX + expected

    def test_content_hash_differs_for_different_content(self) -> None:
        assert fingerprint(Entry(description="a")) != fingerprint(Entry(description="b"))


class TestDiff:
    """Tests for diff()."""

    def test_subscribe_then_new_entry(self, make_snapshot) -> None:
        """A,B,C seen; feed now returns A,B,C,D -> only D is new."""
        _, seen = diff([], make_snapshot("A", "B", "C"))
        assert seen == ["A", "B", "C"]

        new_entries, updated = diff(seen, make_snapshot("A", "B", "C", "D"))

        assert [e.guid for e in new_entries] == ["D"]
        assert updated == ["A", "B", "C", "D"]

    def test_preserves_feed_order(self, make_snapshot) -> None:
        new_entries, _ = diff(["B"], make_snapshot("E", "B", "C", "A"))
        assert [e.guid for e in new_entries] == ["E", "C", "A"]

    def test_returns_only_snapshot_entries(self, make_snapshot) -> None:
        snapshot = make_snapshot("X", "Y")
        new_entries, _ = diff(["A", "B"], snapshot)
        assert all(entry in snapshot.entries for entry in new_entries)

    def test_nothing_new(self, make_snapshot) -> None:
        new_entries, updated = diff(["A", "B"], make_snapshot("B", "A"))
        assert new_entries == []
        assert updated == ["A", "B"]

    def test_does_not_mutate_input(self, make_snapshot) -> None:
        seen = ["A"]
        diff(seen, make_snapshot("A", "B"))
        assert seen == ["A"]

    def test_duplicate_entries_in_snapshot_reported_once(self, make_snapshot) -> None:
        new_entries, updated = diff([], make_snapshot("A", "A", "B"))
        assert [e.guid for e in new_entries] == ["A", "B"]
        assert updated == ["A", "B"]

    def test_full_seen_set_evicts_oldest(self, make_snapshot) -> None:
        """100 seen + 5 new -> 100 kept: the 95 newest old ones plus the 5 new."""
        seen = [f"old-{i}" for i in range(100)]
        new_guids = [f"new-{i}" for i in range(5)]

        new_entries, updated = diff(seen, make_snapshot(*new_guids), cap=100)

        assert len(new_entries) == 5
        assert len(updated) == 100
        assert updated == seen[5:] + new_guids

    def test_cap_holds_for_large_batches(self, make_snapshot) -> None:
        guids = [f"g{i}" for i in range(250)]
        new_entries, updated = diff(["x"], make_snapshot(*guids), cap=100)

        assert len(new_entries) == 250
        assert len(updated) == 100
        assert updated == guids[-100:]

    def test_entry_reappearing_after_eviction_is_new_again(self, make_snapshot) -> None:
        _, seen = diff([], make_snapshot("A"), cap=3)
        _, seen = diff(seen, make_snapshot("B", "C", "D"), cap=3)

        new_entries, _ = diff(seen, make_snapshot("A"), cap=3)

        assert [e.guid for e in new_entries] == ["A"]

    def test_unidentifiable_entries_notified_once(self) -> None:
        snapshot = FeedSnapshot(url="https://example.com/feed", entries=[Entry(description="anon")])

        first, seen = diff([], snapshot)
        second, _ = diff(seen, snapshot)

        assert len(first) == 1
        assert second == []


class TestTrim:
    """Tests for trim()."""

    def test_keeps_most_recent(self) -> None:
        assert trim(["a", "b", "c", "d"], 2) == ["c", "d"]

    def test_under_cap_unchanged(self) -> None:
        assert trim(["a"], 5) == ["a"]

    def test_zero_cap(self) -> None:
        assert trim(["a", "b"], 0) == []
