"""Tests for range and metadata validation helpers."""

from __future__ import annotations

import pytest

from f9_store.interfaces import ValidationError
from f9_store.validation import (
    format_range_header,
    slice_range,
    validate_metadata,
    validate_range,
)

# ruff: noqa: S101


class TestValidateRange:
    """Tests for validate_range."""

    def test_explicit_length(self) -> None:
        assert validate_range(2, 3) == (2, 3)

    def test_non_positive_length_means_to_end(self) -> None:
        assert validate_range(4, 0) == (4, 0)
        assert validate_range(4, -1) == (4, 0)

    def test_negative_offset_rejected(self) -> None:
        with pytest.raises(ValidationError, match="non-negative"):
            validate_range(-1, 3)


class TestFormatRangeHeader:
    """Tests for format_range_header."""

    def test_bounded(self) -> None:
        assert format_range_header(2, 3) == "bytes=2-4"

    def test_open_ended(self) -> None:
        assert format_range_header(10, 0) == "bytes=10-"
        assert format_range_header(0, 0) == "bytes=0-"


class TestSliceRange:
    """Tests for slice_range."""

    def test_bounded(self) -> None:
        assert slice_range(b"hello", 2, 3) == b"llo"

    def test_to_end_and_past_end(self) -> None:
        assert slice_range(b"hello", 1, 0) == b"ello"
        assert slice_range(b"hello", 3, 10) == b"lo"
        assert slice_range(b"hello", 9, 1) == b""


class TestValidateMetadata:
    """Tests for validate_metadata."""

    def test_none_passes_through(self) -> None:
        assert validate_metadata(None) is None

    def test_mapping_copied(self) -> None:
        source = {"owner": "bob"}
        result = validate_metadata(source)
        assert result == source
        assert result is not source

    def test_non_mapping_rejected(self) -> None:
        with pytest.raises(ValidationError, match="mapping"):
            validate_metadata([("owner", "bob")])

    def test_non_string_values_rejected(self) -> None:
        with pytest.raises(ValidationError, match="strings"):
            validate_metadata({"count": 3})
