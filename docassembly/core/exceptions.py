"""Exception taxonomy for the assembly pipeline.

Every error carries the HTTP status the API layer reports for it.
"""


class AssemblyError(Exception):
    """Base class for document assembly failures."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ClientInputError(AssemblyError):
    """The request is missing or carries malformed required fields."""

    status_code = 400


class EmptyAssemblyError(AssemblyError):
    """No template applies to the submitted answers."""


class UpstreamFetchError(AssemblyError):
    """A template, variable or user lookup failed."""


class RenderError(AssemblyError):
    """Rendering a text template to HTML failed."""


class ConversionError(AssemblyError):
    """Converting HTML to PDF failed."""


class OverlayError(AssemblyError):
    """Applying an overlay onto a PDF template failed."""


class CombineError(AssemblyError):
    """Merging PDF files into one document failed."""


class CleanupError(AssemblyError):
    """Deleting a temporary file failed.

    Only ever logged; the response is already committed when it happens.
    """
