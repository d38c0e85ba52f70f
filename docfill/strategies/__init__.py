"""Concrete strategy implementations."""

from docfill.strategies.converters import (
    CloudConvertConverter,
    LibreOfficeConverter,
    PassthroughConverter,
)
from docfill.strategies.metrics import (
    InMemoryMetricsStore,
)
from docfill.strategies.template_engine import (
    DocxTemplateBinder,
    FileSystemTemplateStore,
)

__all__ = [
    "CloudConvertConverter",
    "LibreOfficeConverter",
    "PassthroughConverter",
    "InMemoryMetricsStore",
    "DocxTemplateBinder",
    "FileSystemTemplateStore",
]
