"""Document assembly endpoints."""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import FileResponse, HTMLResponse
from starlette.types import Receive, Scope, Send
from jinja2 import Environment
from pydantic import ValidationError

from docassembly.api.deps import get_app_settings, get_orchestrator
from docassembly.api.schemas import AssembleForm, ErrorResponse
from docassembly.api.utils import build_pdf_options, parse_answers, sanitize_filename
from docassembly.assembly.models import AssemblyRequest
from docassembly.assembly.orchestrator import AssemblyOrchestrator
from docassembly.assembly.tempfiles import delete_file
from docassembly.core.config import Settings
from docassembly.core.exceptions import CleanupError, ClientInputError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["assemble"])

EMPTY_DOCUMENT = "<!DOCTYPE html>"

_header_footer_shell = Environment(autoescape=True).from_string(
    "<!DOCTYPE html>\n"
    '<html><head><meta charset="utf-8"></head>'
    "<body>{{ content }}</body></html>"
)


async def read_assemble_form(request: Request) -> AssembleForm:
    """Read the assembly body, posted either as JSON or as a form.

    Raises:
        ClientInputError: If the body cannot be decoded.
    """
    content_type = request.headers.get("content-type", "")
    try:
        if content_type.startswith("application/json"):
            data = await request.json()
        else:
            data = dict(await request.form())
    except ValueError as e:
        raise ClientInputError(f"Request body could not be decoded: {e}") from e

    if not isinstance(data, dict):
        raise ClientInputError("Request body must be an object")

    try:
        return AssembleForm.model_validate(data)
    except ValidationError as e:
        raise ClientInputError(f"Invalid request body: {e}") from e


async def remove_after_send(path: Path) -> None:
    """Delete the final document once the response has finished."""
    try:
        await delete_file(path)
    except CleanupError as e:
        logger.error(f"Could not delete sent document: {e}")


class TemporaryFileResponse(FileResponse):
    """File download that deletes its file however sending ends.

    The file is removed after a complete send, a failed send and a client
    disconnect alike.
    """

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await remove_after_send(Path(self.path))


@router.post(
    "/assemble",
    response_class=TemporaryFileResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
async def assemble_document(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    orchestrator: AssemblyOrchestrator = Depends(get_orchestrator),
) -> TemporaryFileResponse:
    """Assemble a guide's templates into one PDF and send it as a download.

    The body carries ``guideId`` (or ``fileDataUrl``), the JSON-encoded
    ``answers`` and optional header/footer content. With ``templateId``
    only that text template is rendered.

    Raises:
        ClientInputError: If neither guideId nor fileDataUrl is present or
            the answers are malformed.
        AssemblyError: If any pipeline stage fails.
    """
    form = await read_assemble_form(request)
    if not form.guide_id and not form.file_data_url:
        raise ClientInputError("You must provide either guideId or fileDataUrl")

    logger.info(
        f"Assembly requested: guide={form.guide_id or form.file_data_url}, "
        f"template={form.template_id or 'all'}"
    )

    base_url = settings.public_base_url or str(request.base_url)
    assembly_request = AssemblyRequest(
        cookie_header=request.headers.get("cookie"),
        guide_id=form.guide_id,
        file_data_url=form.file_data_url,
        template_id=form.template_id,
        guide_title=form.guide_title,
        answers=parse_answers(form.answers),
        pdf_options=build_pdf_options(
            settings,
            base_url,
            header=form.header,
            footer=form.footer,
            hide_header_on_first_page=form.hide_header_on_first_page,
            hide_footer_on_first_page=form.hide_footer_on_first_page,
        ),
    )

    pdf_path = await orchestrator.run(assembly_request)

    return TemporaryFileResponse(
        path=str(pdf_path),
        media_type="application/pdf",
        filename=sanitize_filename(form.guide_title or settings.default_download_name),
    )


@router.get("/header-footer", response_class=HTMLResponse)
async def header_footer(
    page: str | None = Query(default=None),
    hide_on_first_page: str | None = Query(default=None, alias="hideOnFirstPage"),
    content: str = Query(default=""),
) -> HTMLResponse:
    """Serve the header or footer document the PDF converter embeds.

    The first page gets an empty document when ``hideOnFirstPage`` is
    ``true``. The content is escaped before it is embedded.
    """
    if page == "1" and hide_on_first_page == "true":
        return HTMLResponse(EMPTY_DOCUMENT)
    return HTMLResponse(_header_footer_shell.render(content=content))
