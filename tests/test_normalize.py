"""Tests for prune and decay."""

import pytest

from revisit.errors import InvalidType
from revisit.visits.models import VisitRecord
from revisit.visits.normalize import NormalizeOptions, normalize, round2


class TestRound2:
    def test_rounds_half_up(self):
        assert round2(0.125) == 0.13
        assert round2(2.675 + 1e-9) == 2.68

    def test_keeps_two_decimals(self):
        assert round2(27.0) == 27.0
        assert round2(1 / 3) == 0.33


class TestDecay:
    def test_example_decay(self):
        index = {
            "/c": {
                "/c/a": VisitRecord(count=60, latest=1),
                "/c/b": VisitRecord(count=40, latest=2),
            }
        }
        res = normalize(index, NormalizeOptions(decay_threshold=50, decay_target=45))
        assert res["/c"]["/c/a"].count == pytest.approx(27.0)
        assert res["/c"]["/c/b"].count == pytest.approx(18.0)

    def test_total_under_threshold_untouched(self):
        index = {"/c": {"/c/a": VisitRecord(count=30, latest=1), "/c/b": VisitRecord(count=20, latest=1)}}
        res = normalize(index, NormalizeOptions(decay_threshold=50, decay_target=45))
        assert res == index

    def test_decays_per_cwd(self):
        index = {
            "/big": {"/x": VisitRecord(count=100, latest=1)},
            "/small": {"/x": VisitRecord(count=10, latest=1)},
        }
        res = normalize(index)
        assert res["/big"]["/x"].count == 45
        assert res["/small"]["/x"].count == 10

    def test_total_bounded_by_target(self):
        index = {"/c": {f"/c/{i}": VisitRecord(count=i + 1, latest=1) for i in range(30)}}
        res = normalize(index, NormalizeOptions(decay_threshold=50, decay_target=45, prune_threshold=0))
        n = len(res["/c"])
        assert sum(r.count for r in res["/c"].values()) <= 45 + 0.01 * n

    def test_keeps_latest_and_flags(self):
        index = {"/c": {"/c/a": VisitRecord(count=100, latest=7, flags={"x"})}}
        res = normalize(index)
        assert res["/c"]["/c/a"].latest == 7
        assert res["/c"]["/c/a"].flags == {"x"}


class TestPrune:
    def test_prunes_below_threshold(self):
        index = {"/c": {"/c/a": VisitRecord(count=0.4, latest=1), "/c/b": VisitRecord(count=1, latest=1)}}
        res = normalize(index)
        assert list(res["/c"]) == ["/c/b"]

    def test_drops_empty_cwd(self):
        index = {"/c": {"/c/a": VisitRecord(count=0, latest=0)}}
        assert normalize(index) == {}

    def test_reprune_after_decay(self):
        index = {"/c": {"/c/a": VisitRecord(count=99, latest=1), "/c/b": VisitRecord(count=1, latest=1)}}
        res = normalize(index, NormalizeOptions(decay_threshold=50, decay_target=45, prune_threshold=0.5))
        # 1 * 45/100 = 0.45 falls under the threshold after decay
        assert list(res["/c"]) == ["/c/a"]

    def test_prune_paths_uses_predicate(self):
        index = {
            "/gone": {"/gone/a": VisitRecord(count=5, latest=1)},
            "/c": {"/c/a": VisitRecord(count=5, latest=1), "/c/missing": VisitRecord(count=5, latest=1)},
        }
        existing = {"/c", "/c/a"}
        res = normalize(index, NormalizeOptions(prune_paths=True, path_exists=existing.__contains__))
        assert res == {"/c": {"/c/a": VisitRecord(count=5, latest=1)}}

    def test_prune_paths_defaults_to_filesystem(self, tmp_path):
        real = tmp_path / "file.txt"
        real.write_text("x")
        index = {
            str(tmp_path): {
                str(real): VisitRecord(count=1, latest=1),
                str(tmp_path / "nope.txt"): VisitRecord(count=1, latest=1),
            }
        }
        res = normalize(index, NormalizeOptions(prune_paths=True))
        assert list(res[str(tmp_path)]) == [str(real)]

    def test_predicate_ignored_without_prune_paths(self):
        index = {"/c": {"/c/a": VisitRecord(count=5, latest=1)}}
        res = normalize(index, NormalizeOptions(path_exists=lambda p: False))
        assert res == index


class TestNormalizeContract:
    def test_pure(self):
        index = {"/c": {"/c/a": VisitRecord(count=100, latest=1)}}
        normalize(index)
        assert index["/c"]["/c/a"].count == 100

    def test_idempotent(self):
        index = {
            "/c": {
                "/c/a": VisitRecord(count=60, latest=1),
                "/c/b": VisitRecord(count=40, latest=2),
                "/c/c": VisitRecord(count=0.2, latest=3),
            }
        }
        once = normalize(index)
        assert normalize(once) == once

    def test_non_numeric_threshold(self):
        with pytest.raises(InvalidType):
            normalize({}, NormalizeOptions(decay_threshold="50"))
