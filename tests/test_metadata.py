"""Tests for the key=value metadata record codec."""

from __future__ import annotations

from f9_store.metadata import (
    decode_metadata,
    encode_metadata,
    merge_metadata,
    sidecar_path,
)

# ruff: noqa: S101


class TestEncodeMetadata:
    """Tests for encode_metadata."""

    def test_one_line_per_entry(self) -> None:
        payload = encode_metadata({"owner": "bob", "team": "x"})
        assert payload == b"owner=bob\nteam=x\n"

    def test_empty_mapping(self) -> None:
        assert encode_metadata({}) == b""

    def test_utf8_values(self) -> None:
        assert encode_metadata({"name": "café"}) == "name=café\n".encode()


class TestDecodeMetadata:
    """Tests for decode_metadata."""

    def test_round_trip(self) -> None:
        record = {"owner": "bob", "content-type": "text/plain"}
        assert decode_metadata(encode_metadata(record)) == record

    def test_blank_lines_ignored(self) -> None:
        assert decode_metadata(b"\n\nowner=bob\n\n") == {"owner": "bob"}

    def test_malformed_lines_dropped(self) -> None:
        """Lines without exactly one '=' are skipped silently."""
        payload = b"owner=bob\nno separator\nurl=a=b\nteam=x"
        assert decode_metadata(payload) == {"owner": "bob", "team": "x"}

    def test_empty_key_and_value_kept(self) -> None:
        assert decode_metadata(b"=value\nkey=\n") == {"": "value", "key": ""}

    def test_empty_or_missing_payload(self) -> None:
        assert decode_metadata(b"") == {}
        assert decode_metadata(None) == {}

    def test_values_with_separator_do_not_round_trip(self) -> None:
        record = {"query": "a=b"}
        assert decode_metadata(encode_metadata(record)) == {}


class TestMergeMetadata:
    """Tests for merge_metadata."""

    def test_override_wins(self) -> None:
        merged = merge_metadata({"owner": "bob", "team": "x"}, {"owner": "alice"})
        assert merged == {"owner": "alice", "team": "x"}

    def test_missing_sides(self) -> None:
        assert merge_metadata(None, {"a": "1"}) == {"a": "1"}
        assert merge_metadata({"a": "1"}, None) == {"a": "1"}
        assert merge_metadata(None, None) == {}

    def test_inputs_not_mutated(self) -> None:
        current = {"owner": "bob"}
        merge_metadata(current, {"owner": "alice"})
        assert current == {"owner": "bob"}


def test_sidecar_path() -> None:
    assert sidecar_path("docs/a.txt") == "docs/a.txt.meta"
    assert sidecar_path("docs/a.txt", ".attrs") == "docs/a.txt.attrs"
