"""Document assembly orchestration.

Coordinates one assembly request from input validation to the final PDF:

    validate -> resolve user -> fetch templates -> filter by condition
    -> merge variables -> segment -> render segments concurrently
    -> combine in segment order

The caller streams the returned file and deletes it afterwards. Every
intermediate file created along the way is either merged into the returned
file or deleted before the orchestrator returns or raises.
"""

import asyncio
import re
import uuid
from collections.abc import Awaitable, Mapping, Sequence
from pathlib import Path
from typing import Any, TypeVar

import structlog

from docassembly.assembly.combiner import combine_pdf_files
from docassembly.assembly.conditions import filter_templates_by_condition
from docassembly.assembly.models import AssemblyRequest, Segment
from docassembly.assembly.renderer import SegmentRenderer
from docassembly.assembly.segments import segment_templates
from docassembly.assembly.tempfiles import discard_files
from docassembly.assembly.variables import merge_guide_variables_with_answers
from docassembly.core.exceptions import (
    AssemblyError,
    ClientInputError,
    CombineError,
    EmptyAssemblyError,
    UpstreamFetchError,
)
from docassembly.interfaces import BaseTemplateStore, BaseUserResolver

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Guide directories are named Guide<id>, e.g. ".../guides/Guide1261/".
_GUIDE_DIR_PATTERN = re.compile(r"Guide([A-Za-z0-9_-]+)/*$")


def resolve_guide_id(request: AssemblyRequest) -> str:
    """Return the guide id of a request, deriving it from ``file_data_url`` if needed.

    Raises:
        ClientInputError: If neither ``guide_id`` nor ``file_data_url`` is usable.
    """
    if request.guide_id:
        return request.guide_id

    if not request.file_data_url:
        raise ClientInputError("You must provide either guideId or fileDataUrl")

    match = _GUIDE_DIR_PATTERN.search(request.file_data_url.split("?", 1)[0])
    if match is None:
        raise ClientInputError(
            f"fileDataUrl does not point to a guide directory: {request.file_data_url}"
        )
    return match.group(1)


class AssemblyOrchestrator:
    """Top-level coordinator of the document assembly pipeline.

    Two entry points share the same renderer and combiner:

    * :meth:`assemble` builds the document from every applicable template
      of a guide.
    * :meth:`assemble_single` renders exactly one text template.

    :meth:`run` picks the entry point for a request.
    """

    def __init__(
        self,
        template_store: BaseTemplateStore,
        user_resolver: BaseUserResolver,
        segment_renderer: SegmentRenderer,
    ) -> None:
        self._template_store = template_store
        self._user_resolver = user_resolver
        self._segment_renderer = segment_renderer

    async def run(self, request: AssemblyRequest) -> Path:
        """Assemble the request's document using the matching entry point."""
        if request.is_single_template:
            return await self.assemble_single(request)
        return await self.assemble(request)

    async def assemble(self, request: AssemblyRequest) -> Path:
        """Assemble every applicable template of the request's guide into one PDF.

        Args:
            request: The assembly request.

        Returns:
            Path of the final PDF. The caller owns and must delete it.

        Raises:
            ClientInputError: If the request names no guide.
            EmptyAssemblyError: If no template applies to the answers.
            UpstreamFetchError: If the user, templates or variables cannot be loaded.
            RenderError, ConversionError, OverlayError, CombineError: If
                producing or merging a segment fails.
        """
        guide_id = resolve_guide_id(request)
        log = logger.bind(request_id=uuid.uuid4().hex[:12], guide_id=guide_id)

        username = await self._resolve_username(request)
        log = log.bind(username=username)

        templates = await self._fetch(
            self._template_store.get_templates_for_guide(username, guide_id),
            f"Could not load templates for guide {guide_id}",
        )
        applicable = filter_templates_by_condition(templates, request.answers)
        log.info(
            "templates_selected",
            available=len(templates),
            applicable=len(applicable),
        )
        if not applicable:
            raise EmptyAssemblyError(f"No template of guide {guide_id} applies to the answers")

        variables = await self._merged_variables(username, guide_id, request.answers)
        segments = segment_templates(applicable)
        log.info("segments_built", segments=[len(s.templates) for s in segments])

        pdf_files = await self._render_segments(username, segments, variables, request)

        try:
            final_pdf = await combine_pdf_files(pdf_files)
        except CombineError:
            await discard_files(pdf_files)
            raise

        log.info("assembly_complete", path=str(final_pdf))
        return final_pdf

    async def assemble_single(self, request: AssemblyRequest) -> Path:
        """Render the one text template named by ``request.template_id``.

        Condition filtering and segmentation are skipped.

        Raises:
            ClientInputError: If the request names no guide or the template
                is not a text template.
            UpstreamFetchError: If the template or variables cannot be loaded.
            RenderError, ConversionError: If rendering fails.
        """
        guide_id = resolve_guide_id(request)
        if not request.template_id:
            raise ClientInputError("templateId is required for single template assembly")

        log = logger.bind(
            request_id=uuid.uuid4().hex[:12],
            guide_id=guide_id,
            template_id=request.template_id,
        )
        username = await self._resolve_username(request)

        template = await self._fetch(
            self._template_store.get_template(username, guide_id, request.template_id),
            f"Could not load template {request.template_id}",
        )
        if template.is_pdf:
            raise ClientInputError(
                f"Template {template.template_id} is a PDF template and cannot be rendered alone"
            )

        variables = await self._merged_variables(username, guide_id, request.answers)
        pdf_file = await self._segment_renderer.render_text_segment(
            [template], variables, request.pdf_options
        )
        log.info("single_template_complete", username=username, path=str(pdf_file))
        return pdf_file

    async def _resolve_username(self, request: AssemblyRequest) -> str:
        if request.username:
            return request.username
        return await self._fetch(
            self._user_resolver.resolve_user(request.cookie_header),
            "Could not resolve the current user",
        )

    async def _merged_variables(
        self, username: str, guide_id: str, answers: Mapping[str, Any]
    ) -> dict[str, Any]:
        guide_variables = await self._fetch(
            self._template_store.get_guide_variables(username, guide_id),
            f"Could not load variables for guide {guide_id}",
        )
        return merge_guide_variables_with_answers(guide_variables, answers)

    async def _fetch(self, call: Awaitable[T], message: str) -> T:
        try:
            return await call
        except AssemblyError:
            raise
        except Exception as e:
            raise UpstreamFetchError(f"{message}: {e}") from e

    async def _render_segment(
        self,
        username: str,
        segment: Segment,
        variables: Mapping[str, Any],
        request: AssemblyRequest,
    ) -> Path:
        if segment.is_pdf:
            return await self._segment_renderer.render_pdf_segment(
                username, segment.templates, variables, request.answers
            )
        return await self._segment_renderer.render_text_segment(
            segment.templates, variables, request.pdf_options
        )

    async def _render_segments(
        self,
        username: str,
        segments: Sequence[Segment],
        variables: Mapping[str, Any],
        request: AssemblyRequest,
    ) -> list[Path]:
        """Render all segments concurrently, returning their files in segment order.

        If any segment fails, the files of the segments that succeeded are
        deleted and the first failure in segment order is raised.
        """
        results: list[Path | None] = [None] * len(segments)

        async def render_at(index: int, segment: Segment) -> None:
            results[index] = await self._render_segment(username, segment, variables, request)

        outcomes = await asyncio.gather(
            *(render_at(index, segment) for index, segment in enumerate(segments)),
            return_exceptions=True,
        )

        failures = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
        if failures:
            await discard_files([path for path in results if path is not None])
            logger.error(
                "segment_render_failed",
                failed=len(failures),
                segments=len(segments),
                error=str(failures[0]),
            )
            raise failures[0]

        return [path for path in results if path is not None]
