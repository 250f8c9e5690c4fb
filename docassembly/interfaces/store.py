"""Template and PDF storage interfaces.

Read-only access to the templates, variables and PDF files a guide owns.
"""

from abc import ABC, abstractmethod
from pathlib import Path

from docassembly.assembly.models import Template, Variable


class BaseTemplateStore(ABC):
    """Abstract base class for template and guide variable storage."""

    @abstractmethod
    async def get_templates_for_guide(self, username: str, guide_id: str) -> list[Template]:
        """Load the active templates of a guide, in guide order.

        Args:
            username: Owner of the guide.
            guide_id: The guide to load templates for.

        Returns:
            Active templates only; an empty list when the guide has none.

        Raises:
            UpstreamFetchError: If the templates cannot be read.
        """

    @abstractmethod
    async def get_template(self, username: str, guide_id: str, template_id: str) -> Template:
        """Load one template by id.

        Raises:
            UpstreamFetchError: If the template does not exist or cannot be read.
        """

    @abstractmethod
    async def get_guide_variables(self, username: str, guide_id: str) -> dict[str, Variable]:
        """Load the variables a guide declares.

        Returns:
            Variables keyed by lowercase name; empty when the guide declares none.

        Raises:
            UpstreamFetchError: If the guide definition cannot be read.
        """


class BasePdfStorage(ABC):
    """Abstract base class for stored PDF template files."""

    @abstractmethod
    async def duplicate_template_pdf(
        self, username: str, template_id: str, guide_id: str | None = None
    ) -> Path:
        """Copy a stored template PDF into a private working file.

        The stored file is never modified; callers own the returned copy.

        Args:
            username: Owner of the template.
            template_id: The PDF template to copy.
            guide_id: Guide the template belongs to. When omitted, the guide
                is looked up in the user's template index.

        Returns:
            Path of the working copy.

        Raises:
            UpstreamFetchError: If the stored PDF cannot be found or copied.
        """
