"""Shared fixtures for the unit test suite."""

import asyncio
from collections import Counter
from pathlib import Path
from types import SimpleNamespace

import pytest
from pypdf import PdfReader
from reportlab.pdfgen import canvas

from docassembly.assembly.models import (
    Overlay,
    PdfOptions,
    Template,
    TemplateKind,
    TextFragment,
    Variable,
)
from docassembly.assembly.tempfiles import temporary_pdf_path
from docassembly.core.exceptions import ConversionError, OverlayError, UpstreamFetchError
from docassembly.interfaces import (
    BaseHtmlRenderer,
    BaseOverlayer,
    BasePdfConverter,
    BasePdfStorage,
    BaseTemplateStore,
    BaseUserResolver,
)

PAGE_HEIGHT = 400


def write_pdf(path: Path, *widths: float) -> Path:
    """Write a PDF with one page per width; widths identify pages in assertions."""
    pdf = canvas.Canvas(str(path), pagesize=(widths[0], PAGE_HEIGHT))
    for width in widths:
        pdf.setPageSize((width, PAGE_HEIGHT))
        pdf.drawString(10, 10, f"page {width}")
        pdf.showPage()
    pdf.save()
    return path


def write_corrupt_pdf(path: Path) -> Path:
    """Write an empty file that no PDF reader accepts."""
    path.write_bytes(b"")
    return path


def page_widths(path: Path) -> list[float]:
    return [float(page.mediabox.width) for page in PdfReader(str(path)).pages]


def template_width(template_id: str) -> float:
    return 100.0 + int(template_id)


def make_template(
    template_id, kind=TemplateKind.TEXT, condition=None, guide_id="1261", **kwargs
) -> Template:
    return Template(
        template_id=str(template_id),
        guide_id=guide_id,
        kind=kind,
        condition=condition,
        **kwargs,
    )


@pytest.fixture
def pdf_writer():
    return write_pdf


@pytest.fixture
def widths_of():
    return page_widths


@pytest.fixture
def template_factory():
    return make_template


# =============================================================================
# Fake collaborators
# =============================================================================


class FakeTemplateStore(BaseTemplateStore):
    def __init__(self, templates, variables=None):
        self.templates = list(templates)
        self.variables = variables or {}
        self.calls = Counter()

    async def get_templates_for_guide(self, username, guide_id):
        self.calls["templates"] += 1
        return list(self.templates)

    async def get_template(self, username, guide_id, template_id):
        self.calls["template"] += 1
        for template in self.templates:
            if template.template_id == template_id:
                return template
        raise UpstreamFetchError(f"Template {template_id} not found")

    async def get_guide_variables(self, username, guide_id):
        self.calls["variables"] += 1
        return dict(self.variables)


class FakeUserResolver(BaseUserResolver):
    def __init__(self, username="alice"):
        self.username = username
        self.calls = 0

    async def resolve_user(self, cookie_header):
        self.calls += 1
        return self.username


class FakeHtmlRenderer(BaseHtmlRenderer):
    """Renders a comma-separated list of template ids."""

    def __init__(self):
        self.rendered: list[dict] = []

    async def render_to_html(self, templates, variables):
        self.rendered.append(dict(variables))
        return ",".join(template.template_id for template in templates)


class FakeConverter(BasePdfConverter):
    """Writes one page per template id found in the HTML.

    Earlier templates take longer, so segments complete in reverse order.
    """

    def __init__(self, temp_dir: Path, failing_ids=(), corrupt_ids=()):
        self.temp_dir = temp_dir
        self.failing_ids = set(failing_ids)
        self.corrupt_ids = set(corrupt_ids)
        self.options: list[PdfOptions] = []

    async def convert_to_pdf(self, html, options):
        self.options.append(options)
        ids = html.split(",")
        await asyncio.sleep(0.05 / int(ids[0]))
        if self.failing_ids.intersection(ids):
            raise ConversionError(f"cannot convert {html}")
        if self.corrupt_ids.intersection(ids):
            return write_corrupt_pdf(temporary_pdf_path(self.temp_dir))
        return write_pdf(
            temporary_pdf_path(self.temp_dir), *(template_width(i) for i in ids)
        )


class FakePdfStorage(BasePdfStorage):
    def __init__(self, temp_dir: Path, corrupt_ids=()):
        self.temp_dir = temp_dir
        self.corrupt_ids = set(corrupt_ids)
        self.duplicated: list[str] = []
        self.guides: list[str | None] = []

    async def duplicate_template_pdf(self, username, template_id, guide_id=None):
        self.duplicated.append(template_id)
        self.guides.append(guide_id)
        if template_id in self.corrupt_ids:
            return write_corrupt_pdf(temporary_pdf_path(self.temp_dir))
        return write_pdf(temporary_pdf_path(self.temp_dir), template_width(template_id))


class FakeOverlayer(BaseOverlayer):
    def __init__(self, failing_ids=()):
        self.failing_ids = set(failing_ids)
        self.applied: list[str] = []

    def compute_overlay(self, template, variables, answers):
        fragment = TextFragment(page=0, left=0, top=0, text=template.template_id)
        return Overlay(fragments=(fragment,))

    async def apply_overlay(self, path, overlay):
        await asyncio.sleep(0)
        template_id = overlay.fragments[0].text
        if template_id in self.failing_ids:
            raise OverlayError(f"cannot overlay template {template_id}")
        self.applied.append(template_id)


@pytest.fixture
def temp_dir(tmp_path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def guide_variables():
    return {
        "client name": Variable(name="Client Name", value="Guide Default"),
        "state": Variable(name="State", value="MN"),
    }


@pytest.fixture
def fakes():
    return SimpleNamespace(
        TemplateStore=FakeTemplateStore,
        UserResolver=FakeUserResolver,
        HtmlRenderer=FakeHtmlRenderer,
        Converter=FakeConverter,
        PdfStorage=FakePdfStorage,
        Overlayer=FakeOverlayer,
    )
