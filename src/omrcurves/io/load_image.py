"""
Image loading utilities for omr-curves.

Pages are read from image files; any color page is converted to RGB and
validated before it reaches the binarization stage.
"""

import os

import cv2

from omrcurves.tracer import get_tracer, trace

SUPPORTED_EXTENSIONS = (".png", ".jpg", ".jpeg", ".tiff", ".tif", ".bmp")

# Smallest page that still leaves room for the skeleton border
MIN_PAGE_SIZE = 3


@trace(label="load_image")
def load_image(path):
    """
    Load a music page from disk.

    Returns a tuple of (image, metadata) where:
    - image: RGB numpy array (H, W, 3)
    - metadata: dict with width, height, source_path

    Raises FileNotFoundError if path does not exist.
    Raises ValueError if the page cannot be decoded or is too small.
    """
    tracer = get_tracer()

    if not os.path.exists(path):
        raise FileNotFoundError(f"Image not found: {path}")

    img_bgr = cv2.imread(path, cv2.IMREAD_COLOR)
    if img_bgr is None:
        raise ValueError(f"Failed to load image: {path}")

    height, width = img_bgr.shape[:2]
    if width < MIN_PAGE_SIZE or height < MIN_PAGE_SIZE:
        raise ValueError(f"Image too small ({width}x{height}): {path}")

    img_rgb = cv2.cvtColor(img_bgr, cv2.COLOR_BGR2RGB)
    tracer.event(f"Loaded page: {width}x{height}")

    metadata = {
        "width": width,
        "height": height,
        "source_path": os.path.abspath(path),
    }
    return img_rgb, metadata


def validate_image_inputs(paths):
    """
    Check that every input path exists and has a supported image extension.

    Returns a list of error messages (empty if all valid).
    """
    errors = []

    for path in paths:
        if not os.path.exists(path):
            errors.append(f"File not found: {path}")
            continue

        ext = os.path.splitext(path)[1].lower()
        if ext not in SUPPORTED_EXTENSIONS:
            errors.append(f"Unsupported image format: {path}")

    return errors
