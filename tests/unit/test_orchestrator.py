"""Unit tests for the assembly orchestrator."""

import asyncio

import pytest

from docassembly.assembly.models import AssemblyRequest, PdfOptions, TemplateKind
from docassembly.assembly.orchestrator import AssemblyOrchestrator, resolve_guide_id
from docassembly.assembly.renderer import SegmentRenderer
from docassembly.core.exceptions import (
    ClientInputError,
    CombineError,
    ConversionError,
    EmptyAssemblyError,
    OverlayError,
    UpstreamFetchError,
)

TEXT = TemplateKind.TEXT
PDF = TemplateKind.PDF


@pytest.fixture
def build(fakes, temp_dir, guide_variables):
    """Build an orchestrator over fake collaborators.

    The returned namespace exposes the fakes for call assertions.
    """

    def _build(
        templates, failing_overlays=(), failing_conversions=(), corrupt_conversions=()
    ):
        store = fakes.TemplateStore(templates, guide_variables)
        resolver = fakes.UserResolver()
        html_renderer = fakes.HtmlRenderer()
        converter = fakes.Converter(
            temp_dir, failing_ids=failing_conversions, corrupt_ids=corrupt_conversions
        )
        pdf_storage = fakes.PdfStorage(temp_dir)
        overlayer = fakes.Overlayer(failing_ids=failing_overlays)
        renderer = SegmentRenderer(html_renderer, converter, pdf_storage, overlayer)
        orchestrator = AssemblyOrchestrator(store, resolver, renderer)
        orchestrator.fakes = {
            "store": store,
            "resolver": resolver,
            "html_renderer": html_renderer,
            "converter": converter,
            "pdf_storage": pdf_storage,
            "overlayer": overlayer,
        }
        return orchestrator

    return _build


def leftover_files(temp_dir, keep=()):
    return sorted(p.name for p in temp_dir.iterdir() if p not in keep)


# =============================================================================
# Input validation
# =============================================================================


class TestResolveGuideId:
    """Test suite for resolve_guide_id."""

    def test_guide_id_wins(self):
        request = AssemblyRequest(guide_id="7", file_data_url="../guides/Guide9/")

        assert resolve_guide_id(request) == "7"

    @pytest.mark.parametrize(
        "url, expected",
        [
            ("../userfiles/dev/guides/Guide1261/", "1261"),
            ("/userfiles/dev/guides/Guide1261", "1261"),
            ("https://example.org/userfiles/guides/Guide42/?v=3", "42"),
        ],
    )
    def test_derived_from_file_data_url(self, url, expected):
        assert resolve_guide_id(AssemblyRequest(file_data_url=url)) == expected

    def test_missing_guide_is_client_error(self):
        with pytest.raises(ClientInputError):
            resolve_guide_id(AssemblyRequest())

    def test_unusable_file_data_url_is_client_error(self):
        with pytest.raises(ClientInputError):
            resolve_guide_id(AssemblyRequest(file_data_url="../userfiles/dev/"))


class TestValidation:
    """Requests without a guide are rejected before any collaborator runs."""

    def test_rejected_before_any_work(self, build, template_factory):
        orchestrator = build([template_factory(1)])

        with pytest.raises(ClientInputError):
            asyncio.run(orchestrator.run(AssemblyRequest(answers={"x": True})))

        fakes = orchestrator.fakes
        assert fakes["resolver"].calls == 0
        assert sum(fakes["store"].calls.values()) == 0
        assert fakes["html_renderer"].rendered == []
        assert fakes["pdf_storage"].duplicated == []


# =============================================================================
# Multi-template assembly
# =============================================================================


class TestAssemble:
    """Test suite for AssemblyOrchestrator.assemble."""

    def test_segments_combined_in_template_order(self, build, template_factory, widths_of, temp_dir):
        templates = [
            template_factory(1, TEXT),
            template_factory(2, TEXT),
            template_factory(3, PDF),
            template_factory(4, PDF),
            template_factory(5, TEXT),
        ]
        orchestrator = build(templates)

        result = asyncio.run(orchestrator.assemble(AssemblyRequest(guide_id="1261")))

        assert widths_of(result) == [101, 102, 103, 104, 105]
        assert leftover_files(temp_dir) == [result.name]
        assert orchestrator.fakes["resolver"].calls == 1
        assert sorted(orchestrator.fakes["overlayer"].applied) == ["3", "4"]

    def test_filters_templates_by_condition(self, build, template_factory, widths_of):
        templates = [
            template_factory(1, condition="x==true"),
            template_factory(2, condition="x==false"),
        ]
        orchestrator = build(templates)

        result = asyncio.run(
            orchestrator.assemble(AssemblyRequest(guide_id="1261", answers={"x": True}))
        )

        assert widths_of(result) == [101]

    def test_text_segments_receive_merged_variables(self, build, template_factory):
        orchestrator = build([template_factory(1)])

        asyncio.run(
            orchestrator.assemble(
                AssemblyRequest(guide_id="1261", answers={"Client Name": "Ada"})
            )
        )

        assert orchestrator.fakes["html_renderer"].rendered == [
            {"client name": "Ada", "state": "MN"}
        ]

    def test_pdf_options_are_forwarded(self, build, template_factory):
        orchestrator = build([template_factory(1)])
        options = PdfOptions(header_html="http://localhost/header-footer?content=x")

        asyncio.run(orchestrator.assemble(AssemblyRequest(guide_id="1261", pdf_options=options)))

        assert orchestrator.fakes["converter"].options == [options]

    def test_known_username_skips_resolution(self, build, template_factory):
        orchestrator = build([template_factory(1)])

        asyncio.run(orchestrator.assemble(AssemblyRequest(guide_id="1261", username="bob")))

        assert orchestrator.fakes["resolver"].calls == 0

    def test_no_applicable_template(self, build, template_factory, temp_dir):
        orchestrator = build([template_factory(1, condition="x == false")])

        with pytest.raises(EmptyAssemblyError):
            asyncio.run(orchestrator.assemble(AssemblyRequest(guide_id="1261", answers={"x": True})))

        assert leftover_files(temp_dir) == []

    def test_failing_pdf_segment_fails_request_without_leftovers(
        self, build, template_factory, temp_dir
    ):
        templates = [
            template_factory(1, TEXT),
            template_factory(2, PDF),
            template_factory(3, PDF),
            template_factory(4, TEXT),
        ]
        orchestrator = build(templates, failing_overlays={"3"})

        with pytest.raises(OverlayError):
            asyncio.run(orchestrator.assemble(AssemblyRequest(guide_id="1261")))

        assert leftover_files(temp_dir) == []

    def test_failing_text_segment_fails_request_without_leftovers(
        self, build, template_factory, temp_dir
    ):
        templates = [
            template_factory(1, TEXT),
            template_factory(2, PDF),
            template_factory(3, TEXT),
        ]
        orchestrator = build(templates, failing_conversions={"3"})

        with pytest.raises(ConversionError):
            asyncio.run(orchestrator.assemble(AssemblyRequest(guide_id="1261")))

        assert leftover_files(temp_dir) == []

    def test_combine_failure_leaves_no_files(self, build, template_factory, temp_dir):
        templates = [
            template_factory(1, TEXT),
            template_factory(2, PDF),
            template_factory(3, TEXT),
        ]
        orchestrator = build(templates, corrupt_conversions={"3"})

        with pytest.raises(CombineError):
            asyncio.run(orchestrator.assemble(AssemblyRequest(guide_id="1261")))

        assert leftover_files(temp_dir) == []

    def test_store_failure_becomes_upstream_error(self, build, template_factory):
        orchestrator = build([template_factory(1)])

        async def broken(*args):
            raise OSError("disk unavailable")

        orchestrator.fakes["store"].get_templates_for_guide = broken

        with pytest.raises(UpstreamFetchError):
            asyncio.run(orchestrator.assemble(AssemblyRequest(guide_id="1261")))


# =============================================================================
# Single-template assembly
# =============================================================================


class TestAssembleSingle:
    """Test suite for AssemblyOrchestrator.assemble_single."""

    def test_renders_only_the_named_template(self, build, template_factory, widths_of):
        templates = [
            template_factory(1, TEXT),
            template_factory(2, TEXT, condition="x == false"),
        ]
        orchestrator = build(templates)

        result = asyncio.run(
            orchestrator.run(
                AssemblyRequest(guide_id="1261", template_id="2", answers={"x": True})
            )
        )

        assert widths_of(result) == [102]
        assert orchestrator.fakes["store"].calls["templates"] == 0
        assert orchestrator.fakes["store"].calls["template"] == 1

    def test_pdf_template_is_rejected(self, build, template_factory):
        orchestrator = build([template_factory(1, PDF)])

        with pytest.raises(ClientInputError):
            asyncio.run(
                orchestrator.assemble_single(AssemblyRequest(guide_id="1261", template_id="1"))
            )

        assert orchestrator.fakes["pdf_storage"].duplicated == []

    def test_unknown_template(self, build, template_factory):
        orchestrator = build([template_factory(1)])

        with pytest.raises(UpstreamFetchError):
            asyncio.run(
                orchestrator.assemble_single(AssemblyRequest(guide_id="1261", template_id="9"))
            )

    def test_guide_derived_from_file_data_url(self, build, template_factory, widths_of):
        orchestrator = build([template_factory(1)])

        result = asyncio.run(
            orchestrator.run(
                AssemblyRequest(file_data_url="../userfiles/dev/guides/Guide1261/", template_id="1")
            )
        )

        assert widths_of(result) == [101]
