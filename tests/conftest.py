"""Shared fixtures: template builders and conversion test doubles."""

import io
import zipfile
from pathlib import Path

import pytest
from docx import Document

from docfill.conversion import ConversionOrchestrator
from docfill.interfaces.converter import BaseConverter, ConversionStrategyFailed, ConvertedArtifact
from docfill.pipeline import RenderPipeline
from docfill.strategies.converters import PassthroughConverter
from docfill.strategies.metrics import InMemoryMetricsStore
from docfill.strategies.template_engine import DocxTemplateBinder, FileSystemTemplateStore

DECLARATION_LINES = [
    "I, {{fullName}}, declare that the statements below are true.",
    "Witness 1: {{witness1Name}} ({{witness1Email}})",
    "Witness 2: {{witness2Name}} ({{witness2Email}})",
    "Signed on {{signatureDate}}",
]

LEGACY_LINES = [
    "Declarant: {{FULL_NAME}}",
    "Date: {{ SIGNATURE_DATE }}",
]

DECLARATION_RECORD = {
    "fullName": "Jane Doe",
    "witness1Name": "Alice",
    "witness1Email": "alice@example.com",
    "witness2Name": "Bob",
    "witness2Email": "bob@example.com",
}


def build_docx(
    lines: list[str],
    header: str | None = None,
    split_runs: list[tuple[str, str]] | None = None,
) -> bytes:
    """Build a real Word document with python-docx.

    Args:
        lines: One paragraph (single run) per line.
        header: Optional text for the first section's header.
        split_runs: Paragraphs written as two runs, e.g. a tag cut in half.
    """
    doc = Document()
    for line in lines:
        doc.add_paragraph(line)
    for first, second in split_runs or []:
        paragraph = doc.add_paragraph()
        paragraph.add_run(first)
        paragraph.add_run(second)
    if header is not None:
        doc.sections[0].header.paragraphs[0].text = header

    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def build_raw_docx(document_xml: str, extra_parts: dict[str, str] | None = None) -> bytes:
    """Build a bare archive holding only the XML parts the scanner reads."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr("word/document.xml", document_xml)
        for name, xml in (extra_parts or {}).items():
            zf.writestr(name, xml)
    return buffer.getvalue()


def document_text(content: bytes) -> str:
    """Return all paragraph text of a rendered document."""
    doc = Document(io.BytesIO(content))
    return "\n".join(p.text for p in doc.paragraphs)


class StubConverter(BaseConverter):
    """Converter double returning fixed bytes or raising a strategy failure."""

    def __init__(
        self,
        name: str,
        content: bytes = b"%PDF-1.7 stub",
        fail: str | None = None,
        available: bool = True,
    ) -> None:
        self._name = name
        self._content = content
        self._fail = fail
        self._available = available
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def available(self) -> bool:
        return self._available

    async def convert(self, document, *, filename, correlation_id):
        self.calls += 1
        if self._fail is not None:
            raise ConversionStrategyFailed(self._name, self._fail)
        return ConvertedArtifact(content=self._content, format="pdf")


@pytest.fixture
def declaration_docx() -> bytes:
    return build_docx(DECLARATION_LINES)


@pytest.fixture
def legacy_docx() -> bytes:
    return build_docx(LEGACY_LINES)


@pytest.fixture
def template_dir(tmp_path, declaration_docx, legacy_docx) -> Path:
    """Template directory with a modern, a legacy and a broken template."""
    root = tmp_path / "templates"
    root.mkdir()
    (root / "CommonCarryDeclaration.docx").write_bytes(declaration_docx)
    (root / "Legacy.docx").write_bytes(legacy_docx)
    (root / "Broken.docx").write_bytes(b"this is not a zip archive")
    (root / "notes.txt").write_text("ignored")
    return root


@pytest.fixture
def metrics() -> InMemoryMetricsStore:
    return InMemoryMetricsStore()


@pytest.fixture
def make_pipeline(template_dir, metrics):
    """Factory for pipelines over the fixture templates with a chosen chain."""

    def _make(*converters: BaseConverter, validation_mode: str = "lenient") -> RenderPipeline:
        chain = list(converters) or [PassthroughConverter()]
        return RenderPipeline(
            store=FileSystemTemplateStore(template_dir),
            binder=DocxTemplateBinder(),
            orchestrator=ConversionOrchestrator(chain),
            metrics=metrics,
            validation_mode=validation_mode,
            default_template="CommonCarryDeclaration.docx",
        )

    return _make
