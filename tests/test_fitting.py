"""Tests for line and circle fitting."""

import math

import pytest


def _circle_points(cx, cy, radius, start=0, stop=180, step=5):
    return [
        (cx + radius * math.cos(math.radians(a)), cy + radius * math.sin(math.radians(a)))
        for a in range(start, stop + 1, step)
    ]


class TestFitLine:
    """Tests for PCA line fitting."""

    def test_horizontal_line(self):
        """Test fitting perfectly horizontal points."""
        from omrcurves.geometry.fitting import fit_line

        line = fit_line([(x, 7) for x in range(10)])

        assert line.mean_distance == pytest.approx(0.0, abs=1e-9)
        assert line.slope == pytest.approx(0.0, abs=1e-9)
        assert line.centroid == pytest.approx([4.5, 7.0])
        assert line.n_points == 10

    def test_direction_left_to_right(self):
        """Test that direction is oriented toward increasing x."""
        from omrcurves.geometry.fitting import fit_line

        line = fit_line([(10 - i, i) for i in range(10)])

        assert line.direction[0] > 0
        assert line.slope == pytest.approx(-1.0)
        assert line.inverted_slope == pytest.approx(-1.0)

    def test_vertical_line_inverted_slope(self):
        """Test that a vertical line has a near-zero inverted slope."""
        from omrcurves.geometry.fitting import fit_line

        line = fit_line([(3, y) for y in range(12)])

        assert abs(line.inverted_slope) < 1e-9

    def test_mean_distance_of_noisy_points(self):
        """Test mean perpendicular distance on alternating offsets."""
        from omrcurves.geometry.fitting import fit_line

        line = fit_line([(x, 5 + (1 if x % 2 else -1)) for x in range(20)])

        assert line.mean_distance == pytest.approx(1.0, abs=0.05)


class TestFitCircle:
    """Tests for circle fitting."""

    def test_exact_circle(self):
        """Test fitting points lying on a circle."""
        from omrcurves.geometry.fitting import fit_circle

        circle = fit_circle(_circle_points(40, 60, 25))

        assert circle.center == pytest.approx([40, 60], abs=1e-3)
        assert circle.radius == pytest.approx(25, abs=1e-3)
        assert circle.mean_distance < 1e-3

    def test_rough_fit_without_refinement(self):
        """Test the algebraic fit alone on a partial arc."""
        from omrcurves.geometry.fitting import fit_circle

        circle = fit_circle(_circle_points(0, 0, 10, 30, 120), refine=False)

        assert circle.radius == pytest.approx(10, abs=1e-3)


class TestModelFitter:
    """Tests for the model fitting service."""

    def _fitter(self, interline=10, **overrides):
        from omrcurves.config import FittingConfig
        from omrcurves.geometry.fitting import FittingParameters, ModelFitter
        from omrcurves.sheet.scale import Scale

        config = FittingConfig(**overrides)
        return ModelFitter(FittingParameters.from_config(config, Scale(interline)))

    def test_too_few_points(self):
        """Test that fewer than 3 points yield no model."""
        assert self._fitter().compute_model([(0, 0), (5, 5)]) is None

    def test_circle_model(self):
        """Test that arc points yield a circle model."""
        from omrcurves.models import CircleModel

        model = self._fitter().compute_model(_circle_points(100, 100, 30, 200, 340))

        assert isinstance(model, CircleModel)
        assert model.radius == pytest.approx(30, abs=0.5)

    def test_line_model_when_circle_too_large(self):
        """Test the line fallback when no acceptable circle exists."""
        from omrcurves.models import LineModel

        fitter = self._fitter(max_circle_radius=0.5)
        model = fitter.compute_model([(x, 5) for x in range(20)])

        assert isinstance(model, LineModel)

    def test_no_model_for_zigzag(self):
        """Test that points fitting neither model are rejected."""
        points = [(0, 0), (10, 10), (20, 0), (30, 10), (40, 0), (50, 10)]

        assert self._fitter().compute_model(points) is None
