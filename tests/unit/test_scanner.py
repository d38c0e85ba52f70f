"""Unit tests for the placeholder scanner and template store."""

import pytest

from conftest import build_docx, build_raw_docx
from docfill.interfaces.template import MalformedTemplate, TemplateNotFound
from docfill.strategies.template_engine import FileSystemTemplateStore, scan_tags
from docfill.strategies.template_engine.scanner import clean_tag, find_tags


def _body(text: str) -> str:
    return (
        '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
        f"<w:body><w:p><w:r><w:t>{text}</w:t></w:r></w:p></w:body></w:document>"
    )


# =============================================================================
# Tag Scanning Tests
# =============================================================================


class TestScanTags:
    """Test suite for scan_tags."""

    def test_distinct_tags(self):
        """Repeated tags are reported once."""
        template = build_raw_docx(_body("{{A}}{{b_c}}{{A}}"))

        assert scan_tags(template) == {"A", "b_c"}

    def test_no_tags(self):
        template = build_raw_docx(_body("Plain text with { single } braces"))

        assert scan_tags(template) == set()

    def test_interior_whitespace_is_trimmed(self):
        template = build_raw_docx(_body("{{  fullName }} and {{signatureDate}}"))

        assert scan_tags(template) == {"fullName", "signatureDate"}

    def test_filter_suffix_is_cut(self):
        template = build_raw_docx(_body("{{ fullName|upper }}"))

        assert scan_tags(template) == {"fullName"}

    def test_dotted_paths_kept_verbatim(self):
        template = build_raw_docx(_body("{{witness.0.name}} {{address.city}}"))

        assert scan_tags(template) == {"witness.0.name", "address.city"}

    def test_tag_split_across_runs_is_not_misread(self):
        """Markup between the braces is never part of a tag name."""
        xml = (
            '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
            "<w:body><w:p><w:r><w:t>{{full</w:t></w:r><w:r><w:t>Name}}</w:t></w:r>"
            "</w:p></w:body></w:document>"
        )

        assert scan_tags(build_raw_docx(xml)) == set()

    def test_header_and_footer_parts_are_scanned(self):
        template = build_raw_docx(
            _body("{{fullName}}"),
            {
                "word/header1.xml": "<w:hdr>{{caseNumber}}</w:hdr>",
                "word/footer2.xml": "<w:ftr>{{pageLabel}}</w:ftr>",
                "word/comments.xml": "<w:comments>{{notScanned}}</w:comments>",
            },
        )

        assert scan_tags(template) == {"fullName", "caseNumber", "pageLabel"}

    def test_real_document_with_header(self):
        template = build_docx(["Dear {{fullName}},"], header="Ref {{caseNumber}}")

        assert scan_tags(template) == {"fullName", "caseNumber"}

    def test_declaration_template(self, declaration_docx):
        assert scan_tags(declaration_docx) == {
            "fullName",
            "witness1Name",
            "witness1Email",
            "witness2Name",
            "witness2Email",
            "signatureDate",
        }

    # =========================================================================
    # Malformed Input Tests
    # =========================================================================

    def test_not_an_archive(self):
        with pytest.raises(MalformedTemplate) as exc_info:
            scan_tags(b"definitely not a zip")

        assert exc_info.value.kind == "malformed_template"

    def test_archive_without_main_part(self):
        import io
        import zipfile

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zf:
            zf.writestr("word/styles.xml", "<w:styles/>")

        with pytest.raises(MalformedTemplate, match="word/document.xml"):
            scan_tags(buffer.getvalue())

    def test_non_bytes_input(self):
        with pytest.raises(MalformedTemplate):
            scan_tags("word/document.xml")


class TestTagHelpers:
    """Test suite for tag text helpers."""

    def test_clean_tag(self):
        assert clean_tag(" fullName | upper ") == "fullName"
        assert clean_tag("plain") == "plain"

    def test_find_tags_keeps_order_and_repeats(self):
        assert find_tags("{{b}} {{a}} {{b}}") == ["b", "a", "b"]

    def test_find_tags_skips_empty_filter_only_tags(self):
        assert find_tags("{{|upper}}") == []


# =============================================================================
# Template Store Tests
# =============================================================================


class TestFileSystemTemplateStore:
    """Test suite for FileSystemTemplateStore."""

    @pytest.fixture
    def store(self, template_dir):
        return FileSystemTemplateStore(template_dir)

    def test_list_templates_only_docx(self, store):
        assert store.list_templates() == [
            "Broken.docx",
            "CommonCarryDeclaration.docx",
            "Legacy.docx",
        ]

    def test_load_returns_bytes(self, store, declaration_docx):
        assert store.load("CommonCarryDeclaration.docx") == declaration_docx

    def test_unknown_template(self, store):
        with pytest.raises(TemplateNotFound) as exc_info:
            store.load("Missing.docx")

        assert exc_info.value.kind == "template_not_found"
        assert "Missing.docx" in exc_info.value.detail

    @pytest.mark.parametrize("name", ["../secret.docx", "sub/Legacy.docx", "", ".."])
    def test_rejects_paths(self, store, name):
        with pytest.raises(TemplateNotFound):
            store.load(name)

    def test_exists(self, store):
        assert store.exists("Legacy.docx")
        assert not store.exists("Nope.docx")

    def test_missing_root_lists_nothing(self, tmp_path):
        store = FileSystemTemplateStore(tmp_path / "absent")

        assert store.list_templates() == []
