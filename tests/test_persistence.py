"""Tests for index validation and JSON storage."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from revisit.errors import InvalidIndex
from revisit.visits.models import VisitRecord
from revisit.visits.normalize import normalize
from revisit.visits.persistence import dumps_index, index_to_dict, read_index, validate_index, write_index


class TestValidateIndex:
    def test_raw_mapping(self):
        res = validate_index({"/c": {"/c/a": {"count": 2, "latest": 10, "flags": {"todo": True}}}})
        assert res == {"/c": {"/c/a": VisitRecord(count=2, latest=10, flags={"todo"})}}

    def test_record_leaves(self):
        record = VisitRecord(count=1, latest=1, flags={"x"})
        res = validate_index({"/c": {"/c/a": record}})
        assert res["/c"]["/c/a"] == record
        assert res["/c"]["/c/a"].flags is not record.flags

    def test_empty_flags_collapse(self):
        res = validate_index({"/c": {"/c/a": {"count": 1, "latest": 1, "flags": {}}}})
        assert res["/c"]["/c/a"].flags is None

    @pytest.mark.parametrize(
        "bad",
        [
            [],
            {1: {}},
            {"/c": []},
            {"/c": {2: {"count": 1, "latest": 1}}},
            {"/c": {"/c/a": 5}},
            {"/c": {"/c/a": {"latest": 1}}},
            {"/c": {"/c/a": {"count": "1", "latest": 1}}},
            {"/c": {"/c/a": {"count": 1}}},
            {"/c": {"/c/a": {"count": True, "latest": 1}}},
            {"/c": {"/c/a": {"count": -1, "latest": 1}}},
            {"/c": {"/c/a": {"count": float("inf"), "latest": 1}}},
            {"/c": {"/c/a": {"count": float("nan"), "latest": 1}}},
            {"/c": {"/c/a": {"count": 1, "latest": float("inf")}}},
            {"/c": {"/c/a": VisitRecord(count=float("nan"), latest=1)}},
            {"/c": {"/c/a": {"count": 1, "latest": 1, "flags": {"x": 1}}}},
            {"/c": {"/c/a": {"count": 1, "latest": 1, "flags": ["x"]}}},
            {"/c": {"/c/a": {"count": 1, "latest": 1, "flags": {"": True}}}},
        ],
    )
    def test_invalid(self, bad):
        with pytest.raises(InvalidIndex):
            validate_index(bad)


class TestSerialization:
    def test_flags_omitted_when_absent(self):
        data = index_to_dict({"/c": {"/c/a": VisitRecord(count=1, latest=2)}})
        assert data == {"/c": {"/c/a": {"count": 1, "latest": 2}}}

    def test_flags_as_true_mapping(self):
        data = index_to_dict({"/c": {"/c/a": VisitRecord(count=1, latest=2, flags={"b", "a"})}})
        assert data["/c"]["/c/a"]["flags"] == {"a": True, "b": True}

    def test_human_readable(self):
        text = dumps_index({"/c": {"/c/a": VisitRecord(count=1, latest=2)}})
        assert text.endswith("\n")
        assert '  "/c": {' in text
        assert json.loads(text) == {"/c": {"/c/a": {"count": 1, "latest": 2}}}

    def test_non_finite_not_serialized(self):
        with pytest.raises(ValueError):
            dumps_index({"/c": {"/c/a": VisitRecord(count=float("inf"), latest=2)}})


class TestReadWrite:
    def test_missing_file(self, tmp_path: Path):
        assert read_index(tmp_path / "nope.json") is None

    def test_corrupt_file(self, tmp_path: Path):
        path = tmp_path / "index.json"
        path.write_text("{not json", encoding="utf-8")
        assert read_index(path) is None

    def test_invalid_structure(self, tmp_path: Path):
        path = tmp_path / "index.json"
        path.write_text('{"/c": {"/c/a": {"count": "many"}}}', encoding="utf-8")
        assert read_index(path) is None

    @pytest.mark.parametrize("constant", ["Infinity", "-Infinity", "NaN"])
    def test_non_finite_constants(self, tmp_path: Path, constant: str):
        path = tmp_path / "index.json"
        path.write_text(f'{{"/c": {{"/c/a": {{"count": {constant}, "latest": 1}}}}}}', encoding="utf-8")
        assert read_index(path) is None

    def test_overflowing_float_literal(self, tmp_path: Path):
        path = tmp_path / "index.json"
        path.write_text('{"/c": {"/c/a": {"count": 1e999, "latest": 1}}}', encoding="utf-8")
        assert read_index(path) is None

    def test_oversized_integer_literal(self, tmp_path: Path):
        path = tmp_path / "index.json"
        path.write_text('{"/c": {"/c/a": {"count": %s, "latest": 1}}}' % ("9" * 5000), encoding="utf-8")
        assert read_index(path) is None

    def test_deeply_nested(self, tmp_path: Path):
        path = tmp_path / "index.json"
        path.write_text("[" * 200000, encoding="utf-8")
        assert read_index(path) is None

    def test_invalid_utf8(self, tmp_path: Path):
        path = tmp_path / "index.json"
        path.write_bytes(b'{"/c\xff": {}}')
        assert read_index(path) is None

    def test_creates_parent_dirs(self, tmp_path: Path):
        path = tmp_path / "a" / "b" / "index.json"
        write_index(path, {})
        assert path.exists()

    def test_round_trip_after_normalize(self, tmp_path: Path):
        index = {
            "/c": {
                "/c/a": VisitRecord(count=60, latest=5, flags={"todo"}),
                "/c/b": VisitRecord(count=40, latest=6),
                "/c/c": VisitRecord(count=0.1, latest=7),
            },
            "/d": {"/d/a": VisitRecord(count=1.5, latest=8)},
        }
        expected = normalize(index)
        path = tmp_path / "index.json"
        write_index(path, expected)
        assert read_index(path) == expected
