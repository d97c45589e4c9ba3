"""Tests for the change threshold filter."""

import pytest

from change_threshold import improvement_percent, should_replace
from models import RunInput


class TestChangeThreshold:

    def test_improvement_percent(self):
        assert improvement_percent(100, 150) == pytest.approx(50.0)
        assert improvement_percent(100, 80) == pytest.approx(-20.0)

    def test_zero_threshold_accepts_equal_scores(self):
        assert should_replace(100, 100, 0)

    def test_zero_threshold_rejects_worse(self):
        assert not should_replace(100, 99, 0)

    @pytest.mark.parametrize('candidate, expected', [(119, False), (120, True), (121, True)])
    def test_required_improvement(self, candidate, expected):
        assert should_replace(100, candidate, 20) is expected

    def test_threshold_100_needs_double(self):
        assert not should_replace(100, 199, 100)
        assert should_replace(100, 200, 100)

    def test_zero_current_score(self):
        assert should_replace(0, 1, 100)
        assert not should_replace(0, 0, 1)

    @pytest.mark.parametrize('threshold', [-1, 101])
    def test_run_input_rejects_out_of_range(self, threshold):
        with pytest.raises(ValueError):
            RunInput(characters=[], mods=[], threshold=threshold)
