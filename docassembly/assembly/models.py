"""Assembly domain models.

Pydantic models for data read from storage or the request, frozen
dataclasses for values produced inside the pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class TemplateKind(str, Enum):
    """How a template is turned into PDF pages."""

    TEXT = "text"
    PDF = "pdf"


class VariableSource(str, Enum):
    """Where a variable's value came from."""

    GUIDE = "guide"
    ANSWER = "answer"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )


class OverlayBox(_CamelModel):
    """A rectangle on a PDF template page filled with a variable's value.

    Coordinates are PDF points measured from the top-left corner of the page.
    """

    page: int = Field(default=0, ge=0, description="Zero-based page index")
    left: float = Field(default=0.0, ge=0)
    top: float = Field(default=0.0, ge=0)
    width: float = Field(default=0.0, ge=0)
    height: float = Field(default=0.0, ge=0)
    variable: str = Field(description="Name of the variable rendered in the box")
    font_size: float = Field(default=12.0, gt=0)


class Template(_CamelModel):
    """A unit of document content belonging to exactly one guide."""

    template_id: str
    guide_id: str
    active: bool = True
    kind: TemplateKind = TemplateKind.TEXT
    condition: str | None = Field(
        default=None,
        description="Expression deciding whether the template applies",
    )
    title: str = ""
    body: str = Field(default="", description="HTML template source for text templates")
    boxes: list[OverlayBox] = Field(
        default_factory=list,
        description="Overlay boxes for PDF templates",
    )

    @property
    def is_pdf(self) -> bool:
        return self.kind is TemplateKind.PDF


@dataclass(frozen=True)
class Variable:
    """A named value declared by a guide or supplied as an answer.

    Attributes:
        name: Variable name as declared; lookups ignore case.
        value: Declared default or answered value.
        source: Whether the guide or an answer supplied the value.
    """

    name: str
    value: Any = None
    source: VariableSource = VariableSource.GUIDE

    @property
    def key(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class Segment:
    """A maximal run of same-kind templates, in original order."""

    kind: TemplateKind
    templates: tuple[Template, ...]

    @property
    def is_pdf(self) -> bool:
        return self.kind is TemplateKind.PDF


@dataclass(frozen=True)
class TextFragment:
    """A piece of text placed on one page of a PDF template."""

    page: int
    left: float
    top: float
    text: str
    font_size: float = 12.0


@dataclass(frozen=True)
class Overlay:
    """All text fragments to stamp onto one PDF template."""

    fragments: tuple[TextFragment, ...] = field(default_factory=tuple)

    def by_page(self) -> dict[int, list[TextFragment]]:
        pages: dict[int, list[TextFragment]] = {}
        for fragment in self.fragments:
            pages.setdefault(fragment.page, []).append(fragment)
        return pages

    def __bool__(self) -> bool:
        return bool(self.fragments)


class PdfOptions(BaseModel):
    """Options forwarded to the HTML to PDF converter."""

    header_spacing: int | None = 5
    footer_spacing: int | None = 5
    margin_top: int | None = 20
    header_html: str | None = None
    footer_html: str | None = None
    extra: dict[str, str | None] = Field(
        default_factory=dict,
        description="Additional converter flags, name without leading dashes",
    )

    def to_flags(self) -> dict[str, str | None]:
        """Return converter flags as ``{name: value}``; ``None`` marks a switch."""
        flags: dict[str, str | None] = {}
        named = {
            "header-spacing": self.header_spacing,
            "footer-spacing": self.footer_spacing,
            "margin-top": self.margin_top,
            "header-html": self.header_html,
            "footer-html": self.footer_html,
        }
        for name, value in named.items():
            if value is not None:
                flags[name] = str(value)
        flags.update(self.extra)
        return flags


class AssemblyRequest(BaseModel):
    """Everything the orchestrator needs for one assembly."""

    username: str | None = None
    cookie_header: str | None = None
    guide_id: str | None = None
    file_data_url: str | None = None
    template_id: str | None = None
    guide_title: str | None = None
    answers: dict[str, Any] = Field(default_factory=dict)
    pdf_options: PdfOptions = Field(default_factory=PdfOptions)

    @property
    def is_single_template(self) -> bool:
        return bool(self.template_id)
