from __future__ import annotations

import pytest

from staged_flush.replay import chunk_by_size, iter_jsonl_records
from staged_flush.streams import SerializedRecord


def test_iter_jsonl_records_serializes_data(tmp_path):
    path = tmp_path / "records.jsonl"
    path.write_text(
        '{"data": {"id": 1, "name": "a"}, "emitted_at": 1000}\n'
        "\n"
        '{"data": {"id": 2}, "emitted_at": "2000"}\n',
        encoding="utf-8",
    )

    records = list(iter_jsonl_records(path))

    assert records == [
        SerializedRecord(payload=b'{"id":1,"name":"a"}', emitted_at=1000),
        SerializedRecord(payload=b'{"id":2}', emitted_at=2000),
    ]


def test_iter_jsonl_records_reports_bad_line(tmp_path):
    path = tmp_path / "records.jsonl"
    path.write_text('{"data": {}, "emitted_at": 1}\n{"emitted_at": 2}\n', encoding="utf-8")
    with pytest.raises(ValueError, match=":2:"):
        list(iter_jsonl_records(path))


def test_chunk_by_size_respects_limit():
    records = [SerializedRecord(b"x" * size, 0) for size in (40, 40, 40, 150, 10)]

    chunks = list(chunk_by_size(records, max_bytes=100))

    assert [[len(r.payload) for r in chunk] for chunk in chunks] == [[40, 40], [40], [150], [10]]


def test_chunk_by_size_empty():
    assert list(chunk_by_size([], max_bytes=10)) == []
