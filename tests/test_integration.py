"""Integration tests for the full pipeline."""

import json
import os

import cv2
import pytest


class TestProcessPage:
    """Tests for one page through all stages."""

    def test_staff_page(self, staff_page_image, page_config):
        """Test staves, scale, segments and the crescendo on a synthetic page."""
        from omrcurves.models import WedgeShape
        from omrcurves.pipeline import process_page

        result = process_page(staff_page_image, page_config, "page_test")

        assert result.report.staff_count == 1
        assert result.sheet.scale.interline == pytest.approx(20.0)
        assert result.sheet.skew.slope == pytest.approx(0.0, abs=1e-6)
        assert len(result.segments) >= 2

        assert len(result.wedges) == 1
        wedge = result.wedges[0]
        assert wedge.shape == WedgeShape.CRESCENDO
        assert wedge.staff_id == "staff_0"
        assert wedge in result.sheet.systems[0].sig

    def test_forced_interline(self, simple_line_image, default_config):
        """Test that a configured interline is used on a page without staves."""
        from omrcurves.pipeline import process_page

        default_config.scale.interline = 8
        result = process_page(simple_line_image, default_config, "page_line")

        assert result.report.staff_count == 0
        assert result.report.interline == 8
        assert result.report.shape_counts.get("LINE", 0) >= 1

    def test_default_interline_fallback(self, simple_line_image, default_config):
        """Test the default interline when nothing is measured."""
        from omrcurves.pipeline import process_page

        result = process_page(simple_line_image, default_config, "page_line")

        assert result.sheet.scale.interline == default_config.scale.default_interline


class TestRunPipeline:
    """Tests for run_pipeline and its outputs."""

    def test_report_written(self, synthetic_input_file, page_config, temp_dir):
        """Test that report.json holds one entry per page."""
        from omrcurves.pipeline import run_pipeline

        out_dir = os.path.join(temp_dir, "output")
        reports = run_pipeline([synthetic_input_file], out_dir, config=page_config)

        assert len(reports) == 1
        with open(os.path.join(out_dir, "report.json"), "r", encoding="utf-8") as f:
            data = json.load(f)
        assert data[0]["page_id"] == reports[0].page_id
        assert data[0]["staff_count"] == 1
        assert data[0]["wedges"][0]["shape"] == "crescendo"

    def test_debug_artifacts(self, synthetic_input_file, page_config, temp_dir):
        """Test that per-stage debug folders are created."""
        from omrcurves.pipeline import run_pipeline

        out_dir = os.path.join(temp_dir, "output")
        reports = run_pipeline([synthetic_input_file], out_dir, config=page_config, debug=True)

        page_dir = os.path.join(out_dir, "debug", reports[0].page_id)
        for stage, filename in [
            ("binarize", "02_binary.png"),
            ("skeleton", "01_skeleton.png"),
            ("arcs", "01_arcs_overlay.png"),
            ("wedges", "01_wedges_overlay.png"),
            ("wedges", "wedges.json"),
        ]:
            assert os.path.exists(os.path.join(page_dir, stage, filename)), f"Missing {stage}/{filename}"

    def test_pipeline_deterministic(self, synthetic_input_file, page_config, temp_dir):
        """Test that two runs produce identical reports."""
        from omrcurves.pipeline import run_pipeline

        first = run_pipeline([synthetic_input_file], os.path.join(temp_dir, "run1"), config=page_config)
        second = run_pipeline([synthetic_input_file], os.path.join(temp_dir, "run2"), config=page_config)

        assert first[0].model_dump() == second[0].model_dump()

    def test_multiple_pages(self, temp_dir, page_config, staff_page_image, simple_line_image):
        """Test pipeline with two input pages."""
        from omrcurves.pipeline import run_pipeline

        paths = []
        for name, img in [("a.png", staff_page_image), ("b.png", simple_line_image)]:
            path = os.path.join(temp_dir, name)
            cv2.imwrite(path, cv2.cvtColor(img, cv2.COLOR_RGB2BGR))
            paths.append(path)

        reports = run_pipeline(paths, os.path.join(temp_dir, "out"), config=page_config)

        assert len(reports) == 2
        assert reports[0].page_id != reports[1].page_id

    def test_missing_input_rejected(self, temp_dir):
        """Test that a missing input fails validation."""
        from omrcurves.pipeline import run_pipeline

        with pytest.raises(ValueError, match="Input validation failed"):
            run_pipeline([os.path.join(temp_dir, "nope.png")], temp_dir)


class TestCli:
    """Tests for the command-line entry point."""

    def test_init_config(self, temp_dir):
        from omrcurves.cli import main

        path = os.path.join(temp_dir, "config.yaml")
        assert main(["init-config", "--out", path]) == 0
        assert os.path.exists(path)

    def test_run_command(self, synthetic_input_file, temp_dir):
        from omrcurves.cli import main

        out_dir = os.path.join(temp_dir, "cli_out")
        assert main(["run", "--inputs", synthetic_input_file, "--out", out_dir]) == 0
        assert os.path.exists(os.path.join(out_dir, "report.json"))

    def test_run_command_failure(self, temp_dir, capsys):
        from omrcurves.cli import main

        code = main(["run", "--inputs", os.path.join(temp_dir, "missing.png"), "--out", temp_dir])

        assert code == 1
        assert "Error" in capsys.readouterr().err
