"""Tests for the no-op store."""

from __future__ import annotations

import io

from f9_store import CancellationToken, NullStore

# ruff: noqa: S101


def test_queries_report_absence() -> None:
    store = NullStore()
    assert store.exists("a.txt") is False
    assert store.read("a.txt") == b""
    assert store.read_range("a.txt", 2, 3) == b""
    assert store.stat("a.txt") == (None, {})
    assert store.read_json("a.json") is None
    with store.open_reader("a.txt") as reader:
        assert reader.read() == b""


def test_mutations_are_discarded() -> None:
    store = NullStore()
    store.create("a.txt", b"data", metadata={"owner": "bob"})
    store.create_json("a.json", {"x": 1})
    store.copy("a.txt", "b.txt")
    store.move("a.txt", "c.txt")
    store.stream_in("d.bin", io.BytesIO(b"data"))
    store.remove("a.txt")
    store.clear_directory("dir")
    store.make_directory_path("dir/sub")
    assert store.exists("a.txt") is False
    assert store.read("c.txt") == b""


def test_tokens_are_ignored() -> None:
    token = CancellationToken()
    token.cancel()
    store = NullStore()
    store.create("a.txt", b"data", token=token)
    assert store.read("a.txt", token=token) == b""
