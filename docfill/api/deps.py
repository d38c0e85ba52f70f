"""FastAPI dependencies for dependency injection.

Provides reusable dependencies for routes including:
- The component factory and render pipeline
- Request correlation ids
"""

import logging
import re

from fastapi import Depends, Header, Request

from docfill.core.factory import ComponentFactory, get_factory as get_global_factory
from docfill.pipeline import RenderPipeline, new_correlation_id

logger = logging.getLogger(__name__)

_CORRELATION_ID = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def get_factory(request: Request) -> ComponentFactory:
    """Return the factory attached to the app, or the global one."""
    factory = getattr(request.app.state, "factory", None)
    return factory or get_global_factory()


def get_pipeline(factory: ComponentFactory = Depends(get_factory)) -> RenderPipeline:
    return factory.get_pipeline()


def get_correlation_id(
    x_correlation_id: str | None = Header(
        default=None, description="Optional caller-supplied correlation id"
    ),
) -> str:
    """Use the caller's X-Correlation-ID when well-formed, else mint one."""
    if x_correlation_id and _CORRELATION_ID.match(x_correlation_id):
        return x_correlation_id
    if x_correlation_id:
        logger.warning(f"Ignoring malformed X-Correlation-ID: {x_correlation_id[:80]!r}")
    return new_correlation_id()
