import sqlite3
from concurrent.futures import ThreadPoolExecutor

import pytest

from whatsong.errors import (
    InvalidMetadata,
    InvalidSourceUrl,
    MetadataUnavailable,
    NotFound,
    StorageError,
    UnsupportedVersion,
)
from whatsong.schemas import Event, Report
from whatsong.storage.db import EventStore

T0 = 1_700_000_000_000


def report(video_id: str, ts: int = T0, version: int = 1) -> Report:
    return Report(source_url=f"https://youtu.be/{video_id}", reported_at_ms=ts, version=version)


def test_empty_store_has_no_current_or_previous(store):
    with pytest.raises(NotFound):
        store.current()
    with pytest.raises(NotFound):
        store.previous()
    assert store.all() == []


def test_single_event_has_current_but_no_previous(store):
    e1 = store.insert(report("dQw4w9WgXcQ"))
    assert store.current() == e1
    with pytest.raises(NotFound):
        store.previous()


def test_ordering(store):
    e1 = store.insert(report("dQw4w9WgXcQ", T0))
    e2 = store.insert(report("9bZkp7q19f0", T0 + 1000))
    e3 = store.insert(report("kJQP7kiw5Fk", T0 + 2000))

    assert store.current() == e3
    assert store.previous() == e2
    assert store.all() == [e1, e2, e3]


def test_order_follows_sequence_not_timestamp(store):
    # a late report with an older start time is still the newest event
    store.insert(report("dQw4w9WgXcQ", T0 + 5000))
    late = store.insert(report("9bZkp7q19f0", T0))
    assert store.current() == late


def test_round_trip_is_lossless(store):
    inserted = store.insert(report("dQw4w9WgXcQ", T0 + 123))
    assert inserted == Event(
        sequence=inserted.sequence,
        source_id="dQw4w9WgXcQ",
        reported_at=T0 + 123,
        duration_seconds=213,
        title="Never Gonna Give You Up",
        version=1,
    )
    assert store.all() == [inserted]


def test_version_gate_leaves_log_unchanged(store, catalog):
    store.insert(report("dQw4w9WgXcQ"))
    with pytest.raises(UnsupportedVersion) as ei:
        store.insert(report("9bZkp7q19f0", version=2))
    assert (ei.value.expected, ei.value.got) == (1, 2)
    assert len(store.all()) == 1
    # rejected before any catalog lookup
    assert catalog.calls == ["dQw4w9WgXcQ"]


def test_invalid_url_is_rejected(store, catalog):
    bad = Report(source_url="https://example.com/x", reported_at_ms=T0, version=1)
    with pytest.raises(InvalidSourceUrl):
        store.insert(bad)
    assert store.all() == []
    assert catalog.calls == []


def test_unknown_video_is_invalid_metadata(store):
    with pytest.raises(InvalidMetadata):
        store.insert(report("zzzzzzzzzzz"))
    assert store.all() == []


def test_catalog_outage_persists_nothing(settings):
    class Down:
        def fetch(self, video_id):
            raise MetadataUnavailable("connection refused")

    s = EventStore(settings.db_path, Down())
    s.init_db()
    with pytest.raises(MetadataUnavailable):
        s.insert(report("dQw4w9WgXcQ"))
    assert s.all() == []


def test_sequences_are_unique_under_concurrency(store):
    n = 32
    ids = list(store.resolver.videos)

    def work(i: int):
        return store.insert(report(ids[i % len(ids)], T0 + i))

    with ThreadPoolExecutor(max_workers=8) as pool:
        inserted = list(pool.map(work, range(n)))

    seqs = [e.sequence for e in inserted]
    assert len(set(seqs)) == n

    stored = [e.sequence for e in store.all()]
    assert len(stored) == n
    assert stored == sorted(stored)
    assert len(set(stored)) == n


def test_log_is_append_only(store, settings):
    store.insert(report("dQw4w9WgXcQ"))
    con = sqlite3.connect(settings.db_path)
    try:
        with pytest.raises(sqlite3.DatabaseError):
            con.execute("UPDATE events SET title = 'x'")
        with pytest.raises(sqlite3.DatabaseError):
            con.execute("DELETE FROM events")
    finally:
        con.close()
    assert store.current().title == "Never Gonna Give You Up"


def test_init_db_is_idempotent(store):
    store.insert(report("dQw4w9WgXcQ"))
    store.init_db()
    assert len(store.all()) == 1


def test_storage_failure_surfaces_as_storage_error(tmp_path, catalog):
    # a directory where the db file should be
    bad = tmp_path / "videos.db"
    bad.mkdir()
    s = EventStore(bad, catalog)
    with pytest.raises(StorageError):
        s.current()


def test_out_of_range_integers_surface_as_storage_error(store, catalog):
    # a catalog duration that does not fit a sqlite INTEGER
    catalog.videos["aaaaaaaaaaa"] = ("Endless", 10**20)
    with pytest.raises(StorageError):
        store.insert(report("aaaaaaaaaaa"))

    unchecked = Report.model_construct(
        source_url="https://youtu.be/dQw4w9WgXcQ", reported_at_ms=10**20, version=1
    )
    with pytest.raises(StorageError):
        store.insert(unchecked)

    assert store.all() == []


def test_report_rejects_timestamps_outside_int64():
    from pydantic import ValidationError

    with pytest.raises(ValidationError):
        report("dQw4w9WgXcQ", ts=10**20)
    with pytest.raises(ValidationError):
        report("dQw4w9WgXcQ", version=-(2**63) - 1)
