"""Tests for page binarization."""

import cv2
import numpy as np
import pytest


class TestBinarize:
    """Tests for the binarize function."""

    def test_output_is_single_channel(self, staff_page_image, page_config):
        """Test that RGB input is reduced to one channel."""
        from omrcurves.preprocess.binarize import binarize

        binary = binarize(staff_page_image, page_config)

        assert binary.shape == staff_page_image.shape[:2]
        assert binary.dtype == np.uint8

    def test_binary_output_values(self, staff_page_image, page_config):
        """Test that output only contains 0 and 255."""
        from omrcurves.preprocess.binarize import binarize

        binary = binarize(staff_page_image, page_config)

        assert set(np.unique(binary)).issubset({0, 255})

    def test_thin_staff_lines_kept(self, staff_page_image, page_config):
        """Test that one-pixel staff lines survive with morphology off."""
        from omrcurves.preprocess.binarize import binarize

        binary = binarize(staff_page_image, page_config)

        assert np.all(binary[60, 20:581] == 255)
        assert binary[70, 300] == 0

    def test_adaptive_method(self, simple_line_image, default_config):
        """Test adaptive thresholding method."""
        from omrcurves.preprocess.binarize import binarize

        default_config.binarization.method = "adaptive"
        binary = binarize(simple_line_image, default_config)

        assert binary[50, 100] == 255

    def test_unknown_method_rejected(self, simple_line_image, default_config):
        """Test that a misspelled method is an error."""
        from omrcurves.preprocess.binarize import binarize

        default_config.binarization.method = "sauvola"
        with pytest.raises(ValueError, match="sauvola"):
            binarize(simple_line_image, default_config)

    def test_morphology_removes_noise(self, default_config):
        """Test that an opening removes an isolated dot but keeps a thick line."""
        from omrcurves.preprocess.binarize import binarize

        img = np.ones((100, 100, 3), dtype=np.uint8) * 255
        cv2.line(img, (10, 50), (90, 50), (0, 0, 0), 4)
        img[20, 20] = [0, 0, 0]

        default_config.binarization.denoise_kernel = 0
        default_config.binarization.morph_kernel = 3
        binary = binarize(img, default_config)

        assert binary[20, 20] == 0
        assert np.sum(binary[45:55, 10:90] > 0) > 50

    def test_ink_ratio(self):
        """Test the ink ratio helper."""
        from omrcurves.preprocess.binarize import get_ink_ratio

        binary = np.zeros((10, 10), dtype=np.uint8)
        binary[:2] = 255
        assert get_ink_ratio(binary) == pytest.approx(0.2)
