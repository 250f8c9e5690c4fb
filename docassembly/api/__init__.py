"""FastAPI routers and dependencies."""

from docassembly.api.assemble import router as assemble_router
from docassembly.api.deps import get_app_settings, get_component_factory, get_orchestrator

__all__ = [
    "assemble_router",
    "get_app_settings",
    "get_component_factory",
    "get_orchestrator",
]
