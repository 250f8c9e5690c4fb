"""FastAPI dependencies for dependency injection.

Settings and the component factory live in the application state, so every
app instance uses the configuration it was created with.
"""

import logging

from fastapi import Depends, Request

from docassembly.assembly.orchestrator import AssemblyOrchestrator
from docassembly.core.config import Settings, get_settings
from docassembly.core.factory import ComponentFactory

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    """Dependency returning the settings of the running application."""
    return getattr(request.app.state, "settings", None) or get_settings()


def get_component_factory(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> ComponentFactory:
    """Dependency returning the application's component factory."""
    factory = getattr(request.app.state, "factory", None)
    if factory is None:
        factory = ComponentFactory(settings)
        request.app.state.factory = factory
    return factory


def get_orchestrator(
    factory: ComponentFactory = Depends(get_component_factory),
) -> AssemblyOrchestrator:
    """Dependency returning the wired assembly orchestrator.

    Raises:
        ValueError: If a collaborator is misconfigured.
    """
    try:
        return factory.get_orchestrator()
    except Exception as e:
        logger.error(f"Failed to build the assembly orchestrator: {e}", exc_info=True)
        raise
