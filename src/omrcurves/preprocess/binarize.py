"""
Page binarization for omr-curves.

Converts input RGB pages to an inverted binary image (ink=255) ready for
staff detection and thinning.
"""

import cv2
import numpy as np

from omrcurves.tracer import get_tracer, trace


@trace(label="binarize")
def binarize(rgb_img, config, debug_writer=None):
    """
    Convert RGB page to binary.

    Returns a uint8 binary image with 0 for background (paper) and 255 for ink.
    """
    tracer = get_tracer()
    settings = config.binarization

    with tracer.span("grayscale", module="binarize"):
        if rgb_img.ndim == 2:
            gray = rgb_img
        else:
            gray = cv2.cvtColor(rgb_img, cv2.COLOR_RGB2GRAY)

    with tracer.span("denoise", module="binarize"):
        if settings.denoise_kernel > 0:
            denoised = cv2.medianBlur(gray, settings.denoise_kernel)
        else:
            denoised = gray

    with tracer.span("threshold", module="binarize"):
        if settings.method == "adaptive":
            binary = cv2.adaptiveThreshold(
                denoised,
                255,
                cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
                cv2.THRESH_BINARY_INV,
                settings.adaptive_block_size,
                settings.adaptive_c,
            )
        elif settings.method == "otsu":
            _, binary = cv2.threshold(denoised, 0, 255, cv2.THRESH_BINARY_INV + cv2.THRESH_OTSU)
        else:
            raise ValueError(f"Unknown binarization method: {settings.method}")

        tracer.event(f"Threshold method: {settings.method}")

    with tracer.span("morphology", module="binarize"):
        kernel_size = settings.morph_kernel
        if kernel_size > 0:
            kernel = cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (kernel_size, kernel_size))
            cleaned = cv2.morphologyEx(binary, cv2.MORPH_OPEN, kernel, iterations=1)
            cleaned = cv2.morphologyEx(cleaned, cv2.MORPH_CLOSE, kernel, iterations=1)
        else:
            cleaned = binary

    ink_ratio = get_ink_ratio(cleaned)
    tracer.event(f"Binary result: ink_ratio={ink_ratio:.3f}")

    if debug_writer:
        debug_writer.save_image(gray, "binarize", "01_gray.png")
        debug_writer.save_image(cleaned, "binarize", "02_binary.png")
        debug_writer.save_json(
            {
                "threshold_method": settings.method,
                "denoise_kernel": settings.denoise_kernel,
                "morph_kernel": settings.morph_kernel,
                "ink_pixel_ratio": round(ink_ratio, 4),
                "image_width": int(gray.shape[1]),
                "image_height": int(gray.shape[0]),
            },
            "binarize",
            "binarize_metrics.json",
        )

    return cleaned


def get_ink_ratio(binary_img):
    """Ratio of ink pixels in a binary image."""
    return float(np.sum(binary_img > 0) / binary_img.size)
