"""
Line and circle fitting for traced point sequences.

The model fitter is the service the arc classifier consults for curved
arcs: it returns a circle model when a circle explains the points well
enough, a line model when a line does, and None otherwise.
"""

from dataclasses import dataclass

import numpy as np
from scipy.optimize import least_squares

from omrcurves.models import CircleModel, LineModel


def fit_line(points):
    """Fit line using PCA (total least squares)."""
    pts = np.asarray(points, dtype=np.float64)
    mean = pts.mean(axis=0)
    centered = pts - mean

    if len(pts) < 2 or not np.any(centered):
        direction = np.array([1.0, 0.0])
    else:
        _, _, vh = np.linalg.svd(centered, full_matrices=False)
        direction = vh[0] / np.linalg.norm(vh[0])

    # Orient left to right, top to bottom for vertical lines
    if direction[0] < 0 or (direction[0] == 0 and direction[1] < 0):
        direction = -direction

    normal = np.array([-direction[1], direction[0]])
    distances = np.abs(centered @ normal)

    return LineModel(
        centroid=mean.tolist(),
        direction=direction.tolist(),
        mean_distance=float(distances.mean()),
        n_points=len(pts),
    )


def fit_circle(points, refine=True):
    """
    Algebraic circle fit (Kasa method), optionally refined with nonlinear
    least squares (Huber loss).
    """
    pts = np.asarray(points, dtype=np.float64)
    x = pts[:, 0]
    y = pts[:, 1]

    # (x-cx)^2 + (y-cy)^2 = r^2  ->  a*x + b*y + c = x^2 + y^2
    A = np.column_stack([x, y, np.ones(len(x))])
    b = x ** 2 + y ** 2
    result, _, _, _ = np.linalg.lstsq(A, b, rcond=None)
    center = np.array([result[0] / 2.0, result[1] / 2.0])
    radius = float(np.sqrt(max(result[2] + center @ center, 1e-9)))

    if refine and np.all(np.isfinite(center)):
        center, radius = _refine_circle(pts, center, radius)

    distances = np.abs(np.linalg.norm(pts - center, axis=1) - radius)

    return CircleModel(
        center=center.tolist(),
        radius=radius,
        mean_distance=float(distances.mean()),
        n_points=len(pts),
    )


def _refine_circle(pts, center, radius):
    def residuals(params):
        cx, cy, r = params
        return np.linalg.norm(pts - np.array([cx, cy]), axis=1) - r

    fit = least_squares(residuals, [center[0], center[1], radius], loss="huber", f_scale=1.0, max_nfev=100)
    cx, cy, r = fit.x
    return np.array([cx, cy]), float(abs(r))


@dataclass(frozen=True)
class FittingParameters:
    """Pixel thresholds of the model fitter."""
    max_circle_distance: float
    min_circle_radius: float
    max_circle_radius: float
    max_line_distance: float
    refine: bool = True

    @classmethod
    def from_config(cls, fitting_config, scale):
        return cls(
            max_circle_distance=scale.to_pixels_double(fitting_config.max_circle_distance),
            min_circle_radius=scale.to_pixels_double(fitting_config.min_circle_radius),
            max_circle_radius=scale.to_pixels_double(fitting_config.max_circle_radius),
            max_line_distance=scale.to_pixels_double(fitting_config.max_line_distance),
            refine=fitting_config.refine,
        )


class ModelFitter:
    """Fit a circle, or failing that a line, to a point sequence."""

    MIN_POINTS = 3

    def __init__(self, params):
        self.params = params

    def compute_model(self, points):
        """Return a CircleModel, a LineModel or None."""
        if len(points) < self.MIN_POINTS:
            return None

        params = self.params

        # The algebraic fit alone rejects near-straight sequences cheaply
        rough = fit_circle(points, refine=False)
        if rough.radius <= params.max_circle_radius:
            circle = fit_circle(points, refine=True) if params.refine else rough
            if (circle.mean_distance <= params.max_circle_distance
                    and params.min_circle_radius <= circle.radius <= params.max_circle_radius):
                return circle

        line = fit_line(points)
        if line.mean_distance <= params.max_line_distance:
            return line

        return None
