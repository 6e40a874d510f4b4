"""Property-based tests for aspect-ratio classification.

**Feature: vidshelf, Property 1: Aspect Ratio Classification**
"""

import pytest
from hypothesis import given, settings, strategies as st

from vidshelf.modules.upload.models import (
    ASPECT_RATIO_TOLERANCE,
    LANDSCAPE_RATIO,
    PORTRAIT_RATIO,
    Classification,
    StreamGeometry,
    classify_aspect_ratio,
)

# Heights large enough that rounding the width moves the ratio by < 0.005
height_strategy = st.integers(min_value=100, max_value=10_000)
inside_offset = st.floats(min_value=-0.09, max_value=0.09, allow_nan=False)
outside_offset = st.floats(min_value=0.11, max_value=0.4, allow_nan=False)
sign_strategy = st.sampled_from([-1, 1])


def width_for(height: int, ratio: float) -> int:
    return max(1, round(height * ratio))


class TestClassificationInsideTolerance:
    """Ratios within the tolerance of a target are bucketed to it."""

    @given(height=height_strategy, offset=inside_offset)
    @settings(max_examples=200)
    def test_near_sixteen_by_nine_is_landscape(self, height: int, offset: float) -> None:
        """**Feature: vidshelf, Property 1: Aspect Ratio Classification**

        For any geometry whose ratio is within the tolerance of 16:9, the
        classification SHALL be landscape.
        """
        width = width_for(height, LANDSCAPE_RATIO + offset)
        assert abs(width / height - LANDSCAPE_RATIO) < ASPECT_RATIO_TOLERANCE

        assert classify_aspect_ratio(width, height) == Classification.LANDSCAPE

    @given(height=height_strategy, offset=inside_offset)
    @settings(max_examples=200)
    def test_near_nine_by_sixteen_is_portrait(self, height: int, offset: float) -> None:
        """**Feature: vidshelf, Property 1: Aspect Ratio Classification**"""
        width = width_for(height, PORTRAIT_RATIO + offset)
        assert abs(width / height - PORTRAIT_RATIO) < ASPECT_RATIO_TOLERANCE

        assert classify_aspect_ratio(width, height) == Classification.PORTRAIT


class TestClassificationOutsideTolerance:
    """Ratios just outside both tolerances are other."""

    @given(height=height_strategy, offset=outside_offset, sign=sign_strategy)
    @settings(max_examples=200)
    def test_off_landscape_is_other(self, height: int, offset: float, sign: int) -> None:
        """**Feature: vidshelf, Property 1: Aspect Ratio Classification**

        For any ratio more than the tolerance away from 16:9 and from 9:16,
        the classification SHALL be other.
        """
        width = width_for(height, LANDSCAPE_RATIO + sign * offset)

        assert classify_aspect_ratio(width, height) == Classification.OTHER

    @given(height=height_strategy, offset=outside_offset, sign=sign_strategy)
    @settings(max_examples=200)
    def test_off_portrait_is_other(self, height: int, offset: float, sign: int) -> None:
        """**Feature: vidshelf, Property 1: Aspect Ratio Classification**"""
        width = width_for(height, PORTRAIT_RATIO + sign * offset)

        assert classify_aspect_ratio(width, height) == Classification.OTHER


class TestClassificationAtToleranceEdge:
    """Integer geometries a few millionths either side of each tolerance edge."""

    @pytest.mark.parametrize(
        "width,height,target,expected",
        [
            # 16:9 + 0.1 = 169000/90000, 16:9 - 0.1 = 151000/90000
            (168_999, 90_000, LANDSCAPE_RATIO, Classification.LANDSCAPE),
            (169_001, 90_000, LANDSCAPE_RATIO, Classification.OTHER),
            (151_001, 90_000, LANDSCAPE_RATIO, Classification.LANDSCAPE),
            (150_999, 90_000, LANDSCAPE_RATIO, Classification.OTHER),
            # 9:16 + 0.1 = 106000/160000, 9:16 - 0.1 = 74000/160000
            (105_999, 160_000, PORTRAIT_RATIO, Classification.PORTRAIT),
            (106_001, 160_000, PORTRAIT_RATIO, Classification.OTHER),
            (74_001, 160_000, PORTRAIT_RATIO, Classification.PORTRAIT),
            (73_999, 160_000, PORTRAIT_RATIO, Classification.OTHER),
        ],
    )
    def test_just_inside_and_just_outside(
        self, width: int, height: int, target: float, expected: Classification
    ) -> None:
        distance = abs(width / height - target)
        assert abs(distance - ASPECT_RATIO_TOLERANCE) < 1e-3

        assert classify_aspect_ratio(width, height) == expected

    @pytest.mark.parametrize("target", [LANDSCAPE_RATIO, PORTRAIT_RATIO])
    @pytest.mark.parametrize("sign", [-1, 1])
    def test_ratio_edges(self, target: float, sign: int) -> None:
        inside = target + sign * (ASPECT_RATIO_TOLERANCE - 1e-9)
        outside = target + sign * (ASPECT_RATIO_TOLERANCE + 1e-9)
        expected = (
            Classification.LANDSCAPE if target == LANDSCAPE_RATIO else Classification.PORTRAIT
        )

        # Height 1 makes the width the ratio itself
        assert classify_aspect_ratio(inside, 1) == expected
        assert classify_aspect_ratio(outside, 1) == Classification.OTHER


class TestClassificationExamples:
    """Concrete geometries."""

    @pytest.mark.parametrize(
        "width,height,expected",
        [
            (1280, 720, Classification.LANDSCAPE),
            (1920, 1080, Classification.LANDSCAPE),
            (3840, 2160, Classification.LANDSCAPE),
            (720, 1280, Classification.PORTRAIT),
            (1080, 1920, Classification.PORTRAIT),
            (1000, 1000, Classification.OTHER),
            (640, 480, Classification.OTHER),
            (480, 640, Classification.OTHER),
        ],
    )
    def test_common_resolutions(
        self, width: int, height: int, expected: Classification
    ) -> None:
        assert classify_aspect_ratio(width, height) == expected

    @given(width=st.integers(min_value=-10, max_value=10_000))
    @settings(max_examples=100)
    def test_zero_height_is_other(self, width: int) -> None:
        """**Feature: vidshelf, Property 1: Aspect Ratio Classification**

        For any width, a zero height SHALL classify as other without error.
        """
        assert classify_aspect_ratio(width, 0) == Classification.OTHER

    def test_audio_only_geometry_is_other(self) -> None:
        assert classify_aspect_ratio(0, 0) == Classification.OTHER
        assert StreamGeometry(0, 0).ratio == 0.0

    @pytest.mark.parametrize("classification", list(Classification))
    def test_prefix_is_value_with_slash(self, classification: Classification) -> None:
        assert classification.prefix == f"{classification.value}/"
