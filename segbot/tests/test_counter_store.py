from __future__ import annotations

import json
from pathlib import Path

from services.counter_store import CounterStore


def read_counter(path: Path) -> object:
    return json.loads(path.read_text(encoding="utf-8"))


def test_missing_file_starts_at_one(tmp_path: Path) -> None:
    path = tmp_path / "data" / "counter.json"
    store = CounterStore(path)

    assert store.peek() == 1
    assert store.next() == 1
    assert read_counter(path) == {"counter": 2}


def test_sequential_calls_increase_by_one(tmp_path: Path) -> None:
    path = tmp_path / "counter.json"
    path.write_text(json.dumps({"counter": 41}), encoding="utf-8")
    store = CounterStore(path)

    assert [store.next() for _ in range(4)] == [41, 42, 43, 44]
    assert store.peek() == 45


def test_invalid_json_resets_to_one(tmp_path: Path) -> None:
    path = tmp_path / "counter.json"
    path.write_text("{not json", encoding="utf-8")
    store = CounterStore(path)

    assert store.next() == 1
    assert read_counter(path) == {"counter": 2}


def test_wrong_shapes_are_treated_as_corrupt(tmp_path: Path) -> None:
    path = tmp_path / "counter.json"
    store = CounterStore(path)

    for content in ("[1, 2]", '{"counter": "7"}', '{"counter": true}'):
        path.write_text(content, encoding="utf-8")
        assert store.next() == 1
        assert read_counter(path) == {"counter": 2}


def test_empty_or_non_positive_values_start_at_one(tmp_path: Path) -> None:
    path = tmp_path / "counter.json"
    store = CounterStore(path)

    path.write_text("", encoding="utf-8")
    assert store.next() == 1
    path.write_text(json.dumps({"counter": 0}), encoding="utf-8")
    assert store.next() == 1
    path.write_text(json.dumps({}), encoding="utf-8")
    assert store.next() == 1
