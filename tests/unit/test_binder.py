"""Unit tests for the docxtpl data binder."""

import asyncio

import pytest

from conftest import DECLARATION_RECORD, build_docx, document_text
from docfill.interfaces.template import BindRetryExhausted
from docfill.strategies.template_engine import DocxTemplateBinder, scan_tags
from docfill.strategies.template_engine.binder import EngineRenderError, unresolved_names


class AlwaysFailingBinder(DocxTemplateBinder):
    """Binder whose engine never succeeds."""

    def __init__(self):
        super().__init__()
        self.renders = 0

    def _render(self, template, context):
        self.renders += 1
        raise EngineRenderError("'ghost' is undefined", ["ghost"])


class TestDocxTemplateBinder:
    """Test suite for DocxTemplateBinder."""

    @pytest.fixture
    def binder(self):
        return DocxTemplateBinder()

    def test_supported_extensions(self, binder):
        assert binder.supported_extensions == {".docx"}

    def test_complete_record(self, binder, declaration_docx):
        record = {**DECLARATION_RECORD, "signatureDate": "2024-05-01"}

        result = asyncio.run(binder.bind(declaration_docx, scan_tags(declaration_docx), record))

        assert result.ok
        assert result.attempts == 1
        assert result.missing == ()
        text = document_text(result.content)
        assert "I, Jane Doe, declare" in text
        assert "Witness 2: Bob (bob@example.com)" in text
        assert "Signed on 2024-05-01" in text

    def test_missing_field_gets_default(self, binder, declaration_docx):
        result = asyncio.run(
            binder.bind(declaration_docx, scan_tags(declaration_docx), DECLARATION_RECORD)
        )

        assert result.ok
        assert result.attempts == 1
        assert result.missing == ("signatureDate",)
        assert result.used_data["signatureDate"] == ""
        assert "{{" not in document_text(result.content)

    def test_empty_record(self, binder, declaration_docx):
        result = asyncio.run(binder.bind(declaration_docx, scan_tags(declaration_docx), {}))

        assert result.ok
        assert len(result.missing) == 6
        assert "I, , declare" in document_text(result.content)

    def test_legacy_template_with_canonical_record(self, binder, legacy_docx):
        result = asyncio.run(
            binder.bind(legacy_docx, scan_tags(legacy_docx), {"fullName": "Jane Doe"})
        )

        assert result.ok
        assert result.missing == ("signatureDate",)
        assert "Declarant: Jane Doe" in document_text(result.content)

    def test_none_value_renders_as_default(self, binder):
        template = build_docx(["Name: [{{fullName}}]"])

        result = asyncio.run(binder.bind(template, {"fullName"}, {"fullName": None}))

        assert result.ok
        assert result.missing == ()
        assert "Name: []" in document_text(result.content)

    def test_values_are_escaped(self, binder):
        template = build_docx(["Company: {{company}}"])

        result = asyncio.run(binder.bind(template, {"company"}, {"company": "Smith & <Sons>"}))

        assert result.ok
        assert "Company: Smith & <Sons>" in document_text(result.content)

    def test_dotted_paths(self, binder):
        template = build_docx(["City: {{address.city}}; first witness: {{witnesses.0.name}}"])
        record = {"address": {"city": "Oslo"}, "witnesses": [{"name": "Alice"}]}

        result = asyncio.run(binder.bind(template, scan_tags(template), record))

        assert result.ok
        assert "City: Oslo; first witness: Alice" in document_text(result.content)

    def test_missing_dotted_path_is_filled(self, binder):
        template = build_docx(["City: [{{address.city}}]"])

        result = asyncio.run(binder.bind(template, scan_tags(template), {}))

        assert result.ok
        assert result.missing == ("address.city",)
        assert "City: []" in document_text(result.content)

    def test_missing_numeric_index_is_filled(self, binder):
        template = build_docx(["First witness: [{{witnesses.0}}]"])

        result = asyncio.run(binder.bind(template, scan_tags(template), {}))

        assert result.ok
        assert result.missing == ("witnesses.0",)
        assert "First witness: []" in document_text(result.content)

    def test_flat_numeric_key(self, binder):
        template = build_docx(["First witness: {{witnesses.0}}"])

        result = asyncio.run(binder.bind(template, scan_tags(template), {"witnesses.0": "Alice"}))

        assert result.ok
        assert result.missing == ()
        assert "First witness: Alice" in document_text(result.content)

    def test_list_value_is_indexed(self, binder):
        template = build_docx(["Second witness: {{witnesses.1}}"])

        result = asyncio.run(
            binder.bind(template, scan_tags(template), {"witnesses": ["Alice", "Bob"]})
        )

        assert result.ok
        assert "Second witness: Bob" in document_text(result.content)

    def test_record_is_not_mutated(self, binder):
        template = build_docx(["{{address.city}}"])
        record = {"address": {}}

        asyncio.run(binder.bind(template, scan_tags(template), record))

        assert record == {"address": {}}

    # =========================================================================
    # Retry Tests
    # =========================================================================

    def test_retry_fills_tag_missed_by_scan(self, binder):
        """A tag the scan did not report is filled on the single retry."""
        template = build_docx(["{{alpha}} and [{{beta}}]"])

        result = asyncio.run(binder.bind(template, {"alpha"}, {"alpha": "A"}))

        assert result.ok
        assert result.attempts == 2
        assert result.missing == ("beta",)
        assert "A and []" in document_text(result.content)

    def test_tag_split_across_runs(self, binder):
        template = build_docx([], split_runs=[("Signed on [{{sign", "atureDate}}]")])
        assert scan_tags(template) == set()

        result = asyncio.run(binder.bind(template, scan_tags(template), {}))

        assert result.ok
        assert result.attempts == 2
        assert result.missing == ("signatureDate",)
        assert "Signed on []" in document_text(result.content)

    def test_tag_split_across_runs_with_value(self, binder):
        template = build_docx([], split_runs=[("Signed on {{sign", "atureDate}}")])

        result = asyncio.run(binder.bind(template, set(), {"signatureDate": "2024-05-01"}))

        assert result.ok
        assert result.attempts == 1
        assert "Signed on 2024-05-01" in document_text(result.content)

    def test_retry_exhausted(self):
        binder = AlwaysFailingBinder()
        template = build_docx(["{{fullName}}"])

        result = asyncio.run(binder.bind(template, {"fullName"}, {"fullName": "Jane"}))

        assert not result.ok
        assert result.attempts == 2
        assert binder.renders == 2
        assert isinstance(result.error, BindRetryExhausted)
        assert result.error.kind == "bind_retry_exhausted"
        assert "ghost" in result.missing
        assert result.used_data["ghost"] == ""

    def test_syntax_error_exhausts_retry(self, binder):
        template = build_docx(["{% if %}broken"])

        result = asyncio.run(binder.bind(template, set(), {}))

        assert not result.ok
        assert result.attempts == 2
        assert "syntax" in result.error.detail.lower()

    def test_several_split_tags_are_filled_on_one_retry(self, binder):
        template = build_docx(
            [],
            split_runs=[("A [{{witness1", "Name}}]"), ("B [{{witness2", "Name}}]")],
        )

        result = asyncio.run(binder.bind(template, scan_tags(template), {}))

        assert result.ok
        assert result.attempts == 2
        assert set(result.missing) == {"witness1Name", "witness2Name"}
        text = document_text(result.content)
        assert "A []" in text
        assert "B []" in text

    def test_split_numeric_index_tag(self, binder):
        template = build_docx([], split_runs=[("First [{{witnesses", ".0}}]")])

        result = asyncio.run(binder.bind(template, scan_tags(template), {}))

        assert result.ok
        assert result.missing == ("witnesses.0",)
        assert "First []" in document_text(result.content)

    # =========================================================================
    # Engine View Tests
    # =========================================================================

    def test_engine_tags_merge_split_runs(self, binder):
        template = build_docx(
            ["{{fullName}}"],
            header="Ref {{caseNumber}}",
            split_runs=[("{{signature", "Date}}")],
        )

        assert set(binder.engine_tags(template)) == {"fullName", "caseNumber", "signatureDate"}

    def test_engine_tags_of_unreadable_template(self, binder):
        assert binder.engine_tags(b"not a docx") == []

    def test_force_fill_places_flat_keys_at_nested_path(self, binder):
        context = {"witnesses.0": "Alice"}

        filled = binder.force_fill(context, ["witnesses.0", "address.city"])

        assert filled == ["address.city"]
        assert context["witnesses"] == ["Alice"]
        assert context["address"] == {"city": ""}


class TestUnresolvedNames:
    """Test suite for mapping engine messages back to tags."""

    def test_bare_name(self):
        assert unresolved_names("'fullName' is undefined", []) == ["fullName"]

    def test_missing_list_element(self):
        tags = ["fullName", "witnesses.0", "items.0", "items.1"]

        assert unresolved_names("'list object' has no element 0", tags) == ["witnesses.0", "items.0"]

    def test_missing_attribute(self):
        tags = ["address.city", "city"]

        assert unresolved_names("'dict object' has no attribute 'city'", tags) == ["address.city", "city"]

    def test_unrelated_message(self):
        assert unresolved_names("Template syntax error", ["fullName"]) == []
