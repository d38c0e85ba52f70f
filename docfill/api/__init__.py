"""FastAPI routers and dependencies."""

from docfill.api.deps import get_correlation_id, get_factory, get_pipeline
from docfill.api.documents import router as documents_router
from docfill.api.templates import router as templates_router

__all__ = [
    "get_correlation_id",
    "get_factory",
    "get_pipeline",
    "documents_router",
    "templates_router",
]
