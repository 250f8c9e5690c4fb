"""Unit tests for the reportlab/pypdf overlay strategy."""

import asyncio

import pytest
from pypdf import PdfReader

from docassembly.assembly.models import Overlay, OverlayBox, TemplateKind, TextFragment
from docassembly.core.exceptions import OverlayError
from docassembly.strategies.pdf import ReportLabOverlayer
from docassembly.strategies.pdf.overlayer import overlay_text


def pdf_template(template_factory, *boxes):
    return template_factory(
        7,
        TemplateKind.PDF,
        boxes=[OverlayBox(**box) for box in boxes],
    )


class TestOverlayText:
    """Test suite for overlay_text."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (True, "X"),
            (False, None),
            (None, None),
            ("  ", None),
            ("Ada", "Ada"),
            (42, "42"),
            (["a", None, "b"], "a, b"),
        ],
    )
    def test_text_for_value(self, value, expected):
        assert overlay_text(value) == expected


class TestComputeOverlay:
    """Test suite for ReportLabOverlayer.compute_overlay."""

    def test_places_values_in_boxes(self, template_factory):
        template = pdf_template(
            template_factory,
            {"variable": "Client Name", "left": 50, "top": 100, "font_size": 10},
            {"variable": "Agree TF", "page": 1, "left": 20, "top": 30},
        )

        overlay = ReportLabOverlayer().compute_overlay(
            template, {"client name": "Ada"}, {"agree tf": True}
        )

        assert overlay.fragments == (
            TextFragment(page=0, left=50, top=110, text="Ada", font_size=10),
            TextFragment(page=1, left=20, top=42, text="X", font_size=12),
        )

    def test_answers_win_over_variables(self, template_factory):
        template = pdf_template(template_factory, {"variable": "County"})

        overlay = ReportLabOverlayer().compute_overlay(
            template, {"county": "Hennepin"}, {"County": "Ramsey"}
        )

        assert [f.text for f in overlay.fragments] == ["Ramsey"]

    def test_empty_values_are_skipped(self, template_factory):
        template = pdf_template(
            template_factory,
            {"variable": "unchecked"},
            {"variable": "blank"},
            {"variable": "unknown"},
        )

        overlay = ReportLabOverlayer().compute_overlay(
            template, {"blank": ""}, {"unchecked": False}
        )

        assert not overlay


class TestApplyOverlay:
    """Test suite for ReportLabOverlayer.apply_overlay."""

    def test_stamps_text_onto_page(self, tmp_path, pdf_writer, widths_of):
        path = pdf_writer(tmp_path / "form.pdf", 300, 310)
        overlay = Overlay(fragments=(TextFragment(page=1, left=20, top=40, text="Ramsey"),))

        asyncio.run(ReportLabOverlayer().apply_overlay(path, overlay))

        pages = PdfReader(str(path)).pages
        assert "Ramsey" in pages[1].extract_text()
        assert "Ramsey" not in pages[0].extract_text()
        assert widths_of(path) == [300, 310]
        assert not (tmp_path / "form.pdf.overlay").exists()

    def test_empty_overlay_leaves_file_untouched(self, tmp_path, pdf_writer):
        path = pdf_writer(tmp_path / "form.pdf", 300)
        before = path.read_bytes()

        asyncio.run(ReportLabOverlayer().apply_overlay(path, Overlay()))

        assert path.read_bytes() == before

    def test_page_out_of_range(self, tmp_path, pdf_writer):
        path = pdf_writer(tmp_path / "form.pdf", 300)
        before = path.read_bytes()
        overlay = Overlay(fragments=(TextFragment(page=3, left=0, top=0, text="x"),))

        with pytest.raises(OverlayError):
            asyncio.run(ReportLabOverlayer().apply_overlay(path, overlay))

        assert path.read_bytes() == before

    def test_unreadable_file(self, tmp_path):
        path = tmp_path / "broken.pdf"
        path.write_bytes(b"")
        overlay = Overlay(fragments=(TextFragment(page=0, left=0, top=0, text="x"),))

        with pytest.raises(OverlayError):
            asyncio.run(ReportLabOverlayer().apply_overlay(path, overlay))
