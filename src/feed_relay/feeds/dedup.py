# ABOUTME: Entry fingerprinting and new-entry detection against a bounded seen-set.
# ABOUTME: Pure functions; persistence of the seen-set is the caller's job.

import hashlib
import json
from collections.abc import Sequence

from feed_relay.models import Entry, FeedSnapshot

DEFAULT_SEEN_CAP = 100
HASH_PREFIX = "sha256:"


def fingerprint(entry: Entry) -> str:
    """Deterministic identifier of an entry.

    Prefers guid, then link, then title. Entries with none of them are
    identified by a hash of their remaining content, so they are notified
    once instead of on every poll.
    """
    for identifier in (entry.guid, entry.link, entry.title):
        identifier = identifier.strip()
        if identifier:
            return identifier

    canonical = json.dumps(
        [
            entry.title,
            entry.link,
            entry.published_at.isoformat() if entry.published_at else "",
            entry.description,
            entry.author_name,
        ],
        ensure_ascii=False,
        separators=(",", ":"),
    )
    return HASH_PREFIX + hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def trim(seen: Sequence[str], cap: int = DEFAULT_SEEN_CAP) -> list[str]:
    """Keep only the `cap` most recently added fingerprints."""
    if cap <= 0:
        return []
    return list(seen[-cap:])


def diff(
    seen: Sequence[str],
    snapshot: FeedSnapshot,
    cap: int = DEFAULT_SEEN_CAP,
) -> tuple[list[Entry], list[str]]:
    """Split a snapshot into unseen entries and the updated seen-set.

    Args:
        seen: Fingerprints already notified, oldest first.
        snapshot: Freshly fetched feed.
        cap: Maximum number of fingerprints retained.

    Returns:
        Tuple of (new entries in feed order, updated seen fingerprints).
        An entry that reappears after `cap` newer fingerprints were recorded
        is reported as new again.
    """
    known = set(seen)
    new_entries: list[Entry] = []
    added: list[str] = []

    for entry in snapshot.entries:
        key = fingerprint(entry)
        if key in known:
            continue
        known.add(key)
        new_entries.append(entry)
        added.append(key)

    return new_entries, trim([*seen, *added], cap)
