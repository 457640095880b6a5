"""Pytest fixtures for omr-curves tests."""

import os
import tempfile

import cv2
import numpy as np
import pytest


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def default_config():
    """Create default pipeline configuration."""
    from omrcurves.config import PipelineConfig
    return PipelineConfig()


@pytest.fixture
def make_buffer():
    """
    Factory for skeleton status buffers.

    make_buffer(width, height, arcs=[(x, y), ...], junctions=[(x, y), ...])
    """
    from omrcurves.skeleton.skeleton import Status

    def _make(width, height, arcs=(), junctions=()):
        buf = np.zeros((height, width), dtype=np.uint8)
        for x, y in arcs:
            buf[y, x] = Status.ARC
        for x, y in junctions:
            buf[y, x] = Status.JUNCTION
        return buf

    return _make


@pytest.fixture
def staff_page_image():
    """White page with one five-line staff (interline 20) and a crescendo below it."""
    img = np.ones((300, 600, 3), dtype=np.uint8) * 255
    for y in (60, 80, 100, 120, 140):
        cv2.line(img, (20, y), (580, y), (0, 0, 0), 1)
    cv2.line(img, (150, 198), (350, 180), (0, 0, 0), 1)
    cv2.line(img, (150, 202), (350, 220), (0, 0, 0), 1)
    return img


@pytest.fixture
def simple_line_image():
    """Create a simple white image with a single black line."""
    img = np.ones((100, 200, 3), dtype=np.uint8) * 255
    cv2.line(img, (20, 50), (180, 50), (0, 0, 0), 2)
    return img


@pytest.fixture
def synthetic_input_file(temp_dir, staff_page_image):
    """Write the staff page to disk for integration tests."""
    path = os.path.join(temp_dir, "page.png")
    cv2.imwrite(path, cv2.cvtColor(staff_page_image, cv2.COLOR_RGB2BGR))
    return path


@pytest.fixture
def page_config():
    """Pipeline configuration suited to the thin synthetic lines."""
    from omrcurves.config import PipelineConfig

    config = PipelineConfig()
    config.binarization.denoise_kernel = 0
    return config
