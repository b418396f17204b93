"""Unit tests for the trend calculator."""

import math

import pytest

_hyp = pytest.importorskip("hypothesis")
from hypothesis import given
from hypothesis import strategies as st

from shop_dashboard.analytics.trend import comparative_trend, trend


class TestTrend:
    """Test signed percentage change."""

    def test_zero_to_zero(self):
        assert trend(0, 0) == 0

    def test_growth_from_zero(self):
        assert trend(250, 0) == 100

    def test_increase(self):
        assert trend(150, 100) == 50

    def test_decrease(self):
        assert trend(50, 100) == -50

    def test_negative_current_against_zero_baseline(self):
        """A loss against a zero baseline reports no change rather than NaN."""
        assert trend(-20, 0) == 0

    @given(
        st.floats(min_value=-1e12, max_value=1e12, allow_nan=False),
        st.floats(min_value=-1e12, max_value=1e12, allow_nan=False),
    )
    def test_always_finite(self, current, previous):
        assert math.isfinite(trend(current, previous))


class TestComparativeTrend:
    """Test trend suppression without a comparison interval."""

    def test_no_comparison_is_zero(self):
        assert comparative_trend(500, 0, has_comparison=False) == 0

    def test_with_comparison_uses_trend(self):
        assert comparative_trend(500, 0, has_comparison=True) == 100
        assert comparative_trend(150, 100, has_comparison=True) == 50
