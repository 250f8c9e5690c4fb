"""Component Factory for collaborator instantiation.

Builds the storage, rendering and user resolution strategies from
configuration and wires them into the assembly orchestrator.
"""

import logging

from docassembly.assembly.orchestrator import AssemblyOrchestrator
from docassembly.assembly.renderer import SegmentRenderer
from docassembly.core.config import Settings, get_settings
from docassembly.interfaces import (
    BaseHtmlRenderer,
    BaseOverlayer,
    BasePdfConverter,
    BasePdfStorage,
    BaseTemplateStore,
    BaseUserResolver,
)
from docassembly.strategies import (
    FilePdfStorage,
    FileTemplateStore,
    HttpUserResolver,
    JinjaHtmlRenderer,
    ReportLabOverlayer,
    UserFileLayout,
    WkhtmltopdfConverter,
)

logger = logging.getLogger(__name__)


class ComponentFactory:
    """Factory for creating collaborator instances based on configuration.

    Example:
        ```python
        factory = ComponentFactory(get_settings())
        orchestrator = factory.get_orchestrator()
        pdf_path = await orchestrator.run(request)
        ```
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the factory with optional settings.

        Args:
            settings: Application settings. If None, uses global settings.
        """
        self._settings = settings or get_settings()
        self._layout = UserFileLayout(self._settings.data_dir)
        self._template_store_cache: BaseTemplateStore | None = None
        self._pdf_storage_cache: BasePdfStorage | None = None
        self._html_renderer_cache: BaseHtmlRenderer | None = None
        self._converter_cache: BasePdfConverter | None = None
        self._overlayer_cache: BaseOverlayer | None = None
        self._user_resolver_cache: BaseUserResolver | None = None
        self._orchestrator_cache: AssemblyOrchestrator | None = None

    def get_template_store(self) -> BaseTemplateStore:
        if self._template_store_cache is None:
            logger.info(f"Instantiating template store: {self._settings.data_dir}")
            self._template_store_cache = FileTemplateStore(self._layout)
        return self._template_store_cache

    def get_pdf_storage(self) -> BasePdfStorage:
        if self._pdf_storage_cache is None:
            self._pdf_storage_cache = FilePdfStorage(self._layout, self._settings.temp_dir)
        return self._pdf_storage_cache

    def get_html_renderer(self) -> BaseHtmlRenderer:
        if self._html_renderer_cache is None:
            self._html_renderer_cache = JinjaHtmlRenderer(
                stylesheet_path=self._settings.stylesheet_path,
            )
        return self._html_renderer_cache

    def get_converter(self) -> BasePdfConverter:
        """Get the HTML to PDF converter.

        Raises:
            ValueError: If no converter binary is configured.
        """
        if self._converter_cache is None:
            if not self._settings.converter_binary_path:
                raise ValueError("CONVERTER_BINARY_PATH is required for PDF conversion")

            logger.info(f"Instantiating converter: {self._settings.converter_binary_path}")
            self._converter_cache = WkhtmltopdfConverter(
                binary_path=self._settings.converter_binary_path,
                temp_dir=self._settings.temp_dir,
                timeout_seconds=self._settings.converter_timeout_seconds,
            )
        return self._converter_cache

    def get_overlayer(self) -> BaseOverlayer:
        if self._overlayer_cache is None:
            self._overlayer_cache = ReportLabOverlayer()
        return self._overlayer_cache

    def get_user_resolver(self) -> BaseUserResolver:
        if self._user_resolver_cache is None:
            logger.info(
                f"Instantiating user resolver: "
                f"{self._settings.user_service_url or 'default user'}"
            )
            self._user_resolver_cache = HttpUserResolver(
                service_url=self._settings.user_service_url,
                default_username=self._settings.default_username,
                timeout_seconds=self._settings.user_service_timeout_seconds,
            )
        return self._user_resolver_cache

    def get_orchestrator(self) -> AssemblyOrchestrator:
        """Get the assembly orchestrator wired with every collaborator."""
        if self._orchestrator_cache is None:
            segment_renderer = SegmentRenderer(
                html_renderer=self.get_html_renderer(),
                converter=self.get_converter(),
                pdf_storage=self.get_pdf_storage(),
                overlayer=self.get_overlayer(),
                max_concurrent_conversions=self._settings.render_concurrency,
            )
            self._orchestrator_cache = AssemblyOrchestrator(
                template_store=self.get_template_store(),
                user_resolver=self.get_user_resolver(),
                segment_renderer=segment_renderer,
            )
        return self._orchestrator_cache

    def clear_cache(self) -> None:
        """Clear all cached component instances."""
        self._template_store_cache = None
        self._pdf_storage_cache = None
        self._html_renderer_cache = None
        self._converter_cache = None
        self._overlayer_cache = None
        self._user_resolver_cache = None
        self._orchestrator_cache = None
        logger.debug("Component factory cache cleared")

