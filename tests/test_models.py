"""Tests for data models and deterministic ids."""

import math

import pytest
from pydantic import ValidationError


class TestGradeImpacts:
    """Tests for grade computation."""

    def test_weighted_geometric_mean(self):
        """Test grade as intrinsic ratio times weighted geometric mean."""
        from omrcurves.models import GradeImpacts

        impacts = GradeImpacts(names=["a", "b"], values=[0.25, 1.0], weights=[1.0, 1.0], intrinsic_ratio=0.8)

        assert impacts.grade == pytest.approx(0.8 * 0.5)
        assert impacts.get("a") == 0.25
        assert impacts.as_dict() == {"a": 0.25, "b": 1.0}

    def test_zero_impact_zeroes_grade(self):
        from omrcurves.models import GradeImpacts

        impacts = GradeImpacts(names=["a", "b"], values=[0.0, 1.0], weights=[1.0, 1.0])

        assert impacts.grade == 0.0


class TestLookupArea:
    """Tests for half-open rectangle containment."""

    def test_contains_half_open(self):
        from omrcurves.models import LookupArea

        area = LookupArea(x=10, y=20, width=4, height=6)

        assert area.contains((10, 20))
        assert area.contains((13, 25))
        assert not area.contains((14, 22))
        assert not area.contains((12, 26))
        assert area.max_x == 14


class TestModels:
    """Tests for model validation and helpers."""

    def test_line_model_slopes(self):
        from omrcurves.models import LineModel

        horizontal = LineModel(centroid=[0, 0], direction=[1.0, 0.0])
        vertical = LineModel(centroid=[0, 0], direction=[0.0, 1.0])

        assert horizontal.slope == 0.0
        assert horizontal.inverted_slope == math.inf
        assert vertical.slope == math.inf
        assert vertical.inverted_slope == 0.0

    def test_extra_fields_forbidden(self):
        from omrcurves.models import CircleModel

        with pytest.raises(ValidationError):
            CircleModel(center=[0, 0], radius=3, color="red")

    def test_ids_deterministic(self):
        from omrcurves.models import generate_page_id, generate_segment_id, generate_wedge_id

        assert generate_segment_id((1, 2), (3, 4)) == generate_segment_id([1, 2], [3, 4])
        assert generate_wedge_id("crescendo", ["b", "a"]) == generate_wedge_id("crescendo", ["a", "b"])
        assert generate_wedge_id("crescendo", ["a", "b"]) != generate_wedge_id("diminuendo", ["a", "b"])
        assert generate_page_id("p.png", 0) != generate_page_id("p.png", 1)

    def test_bbox_helpers(self):
        from omrcurves.models import compute_bbox, compute_bbox_from_bboxes

        assert compute_bbox([(5, 7), (2, 9), (4, 1)]) == [2, 1, 5, 9]
        assert compute_bbox([]) == [0, 0, 0, 0]
        assert compute_bbox_from_bboxes([[0, 0, 2, 2], [1, -1, 5, 1]]) == [0, -1, 5, 2]
