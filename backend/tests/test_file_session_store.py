from __future__ import annotations

import asyncio
import json
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from app.services.exceptions import StorageWriteFailed
from app.services.session_store import FileSessionStore, SessionRecord, cosine_similarity

BASE_TIME = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


def make_record(minutes: int = 0, embedding: list[float] | None = None, **overrides) -> SessionRecord:
    fields = {
        "id": str(uuid.uuid4()),
        "timestamp": BASE_TIME + timedelta(minutes=minutes),
        "original_filename": "session.m4a",
        "mimetype": "audio/mp4",
        "size": 2048,
        "audio_path": "data/uploads/session.m4a",
        "raw_transcript": "how have you been sleeping",
        "transcript": "Speaker A (Therapist): how have you been sleeping",
        "summary": "The client reported poor sleep.",
        "embedding": embedding or [0.1, 0.2, 0.3],
    }
    fields.update(overrides)
    return SessionRecord(**fields)


def test_insert_then_get_round_trips_every_field(file_store):
    record = make_record()

    asyncio.run(file_store.insert(record))
    loaded = asyncio.run(file_store.get_by_id(record.id))

    assert loaded == record


def test_insert_writes_index_and_record_file(file_store):
    record = make_record()

    asyncio.run(file_store.insert(record))

    with open(file_store.index_path, encoding="utf-8") as f:
        index = json.load(f)
    with open(file_store.sessions_dir / f"{record.id}.json", encoding="utf-8") as f:
        stored = json.load(f)

    assert [item["id"] for item in index] == [record.id]
    assert stored["originalFilename"] == "session.m4a"
    assert stored["rawTranscript"] == record.raw_transcript
    assert stored["audioPath"] == record.audio_path


def test_list_all_is_newest_first(file_store):
    older = make_record(minutes=0)
    newest = make_record(minutes=20)
    middle = make_record(minutes=10)
    for record in (older, newest, middle):
        asyncio.run(file_store.insert(record))

    records = asyncio.run(file_store.list_all())

    assert [r.id for r in records] == [newest.id, middle.id, older.id]


def test_list_all_on_empty_store(file_store):
    assert asyncio.run(file_store.list_all()) == []


def test_get_by_id_unknown_or_malformed_returns_none(file_store):
    asyncio.run(file_store.insert(make_record()))

    assert asyncio.run(file_store.get_by_id(str(uuid.uuid4()))) is None
    assert asyncio.run(file_store.get_by_id("../sessions-index")) is None


def test_corrupt_index_degrades_to_empty_list(file_store):
    file_store.sessions_dir.mkdir(parents=True)
    file_store.index_path.write_text("{not json", encoding="utf-8")

    assert asyncio.run(file_store.list_all()) == []


def test_corrupt_record_file_degrades_to_none(file_store):
    record = make_record()
    asyncio.run(file_store.insert(record))
    (file_store.sessions_dir / f"{record.id}.json").write_text("[]", encoding="utf-8")

    assert asyncio.run(file_store.get_by_id(record.id)) is None


def test_duplicate_id_is_rejected(file_store):
    record = make_record()
    asyncio.run(file_store.insert(record))

    with pytest.raises(StorageWriteFailed):
        asyncio.run(file_store.insert(make_record(id=record.id)))

    assert len(asyncio.run(file_store.list_all())) == 1


def test_embedding_dimension_mismatch_is_rejected(file_store):
    asyncio.run(file_store.insert(make_record(embedding=[0.1, 0.2, 0.3])))

    with pytest.raises(StorageWriteFailed):
        asyncio.run(file_store.insert(make_record(embedding=[0.1, 0.2])))


def test_unwritable_directory_raises_write_failed(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    store = FileSessionStore(blocker / "sessions")

    with pytest.raises(StorageWriteFailed):
        asyncio.run(store.insert(make_record()))


def test_concurrent_inserts_keep_every_record(file_store):
    records = [make_record(minutes=i) for i in range(10)]

    async def insert_all():
        await asyncio.gather(*(file_store.insert(r) for r in records))

    asyncio.run(insert_all())

    stored = asyncio.run(file_store.list_all())
    assert {r.id for r in stored} == {r.id for r in records}


def test_find_similar_ranks_and_filters(file_store):
    close = make_record(minutes=1, embedding=[1.0, 0.1, 0.0])
    closest = make_record(minutes=2, embedding=[1.0, 0.0, 0.0])
    unrelated = make_record(minutes=3, embedding=[0.0, 1.0, 0.0])
    for record in (close, closest, unrelated):
        asyncio.run(file_store.insert(record))

    matches = asyncio.run(file_store.find_similar([1.0, 0.0, 0.0]))
    assert [m.id for m in matches] == [closest.id, close.id]

    limited = asyncio.run(file_store.find_similar([1.0, 0.0, 0.0], limit=1))
    assert [m.id for m in limited] == [closest.id]


def test_cosine_similarity_edge_cases():
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0
    assert cosine_similarity([1.0], [1.0, 0.0]) == 0.0


def test_failed_index_write_leaves_no_record_behind(file_store):
    record = make_record()
    file_store.sessions_dir.mkdir(parents=True)
    # A directory where the index temp file goes makes the index write fail.
    (file_store.sessions_dir / "sessions-index.json.tmp").mkdir()

    with pytest.raises(StorageWriteFailed):
        asyncio.run(file_store.insert(record))

    assert asyncio.run(file_store.get_by_id(record.id)) is None
    assert not (file_store.sessions_dir / f"{record.id}.json").exists()
    assert asyncio.run(file_store.list_all()) == []


def test_get_by_id_accepts_non_canonical_uuid_forms(file_store):
    record = make_record()
    asyncio.run(file_store.insert(record))
    hex_id = uuid.UUID(record.id).hex

    assert asyncio.run(file_store.get_by_id(record.id.upper())) == record
    assert asyncio.run(file_store.get_by_id("{" + record.id + "}")) == record
    assert asyncio.run(file_store.get_by_id(hex_id)) == record
