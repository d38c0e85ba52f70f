"""Template engine strategies.

Implements placeholder scanning, tag normalization, validation and data
binding for Word document templates.
"""

from docfill.strategies.template_engine.binder import DocxTemplateBinder
from docfill.strategies.template_engine.models import TemplateInspection
from docfill.strategies.template_engine.normalizer import (
    LEGACY_TAG_MAP,
    RepairReport,
    normalize_record,
    normalize_tag,
    repair_template,
)
from docfill.strategies.template_engine.scanner import scan_tags
from docfill.strategies.template_engine.store import FileSystemTemplateStore
from docfill.strategies.template_engine.validator import example_payload, require_complete, validate

__all__ = [
    "DocxTemplateBinder",
    "FileSystemTemplateStore",
    "TemplateInspection",
    "RepairReport",
    "LEGACY_TAG_MAP",
    "normalize_tag",
    "normalize_record",
    "repair_template",
    "scan_tags",
    "validate",
    "require_complete",
    "example_payload",
]
