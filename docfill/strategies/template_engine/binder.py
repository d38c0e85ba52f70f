"""Data binder strategy.

Binds a field record into a Word template with docxtpl. Every scanned
placeholder is pre-filled (record value or an empty default); placeholders
the engine still cannot resolve are force-filled and rendered once more.
"""

import asyncio
import copy
import io
import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from docxtpl import DocxTemplate
from jinja2 import Environment, StrictUndefined
from jinja2.exceptions import TemplateError as JinjaTemplateError
from jinja2.exceptions import UndefinedError

from docfill.interfaces.template import BaseTemplateBinder, BindRetryExhausted, RenderResult
from docfill.strategies.template_engine.normalizer import normalize_tag
from docfill.strategies.template_engine.scanner import find_tags
from docfill.strategies.template_engine.validator import MISSING, assign_path, resolve_path

logger = logging.getLogger(__name__)

_UNDEFINED_NAME = re.compile(r"'([^']+)' is undefined")
# e.g. "dict object has no element 0", "'dict object' has no attribute 'city'"
_UNDEFINED_MEMBER = re.compile(r"has no (?:element|attribute) '?([^'\s]+)'?")


class EngineRenderError(Exception):
    """Engine-neutral render failure; never leaves this module."""

    def __init__(self, detail: str, unresolved: Iterable[str] = ()) -> None:
        super().__init__(detail)
        self.detail = detail
        self.unresolved = list(dict.fromkeys(unresolved))


def unresolved_names(message: str, tags: Iterable[str]) -> list[str]:
    """Map an engine undefined-value message onto template tags.

    A bare name ("'x' is undefined") is returned as is. A failed member
    lookup ("has no element 0") is matched against the tags whose last
    segment is that member.
    """
    names = _UNDEFINED_NAME.findall(message)
    members = _UNDEFINED_MEMBER.findall(message)
    for member in members:
        names.extend(t for t in tags if t.rsplit(".", 1)[-1] == member)
    return list(dict.fromkeys(names))


class DocxTemplateBinder(BaseTemplateBinder):
    """Renders templates with docxtpl under a strict Jinja2 environment.

    Strict undefined handling makes the engine report any placeholder the
    pre-fill did not cover. A tag split across runs never shows up in the
    raw XML scan, so before the single retry every tag in the engine's own
    merged view of the document is filled.
    """

    def __init__(self, default_value: str = "", autoescape: bool = True) -> None:
        """Initialize the binder.

        Args:
            default_value: Value substituted for absent fields.
            autoescape: Escape XML special characters in values.
        """
        self._default = default_value
        self._autoescape = autoescape

    @property
    def default_value(self) -> str:
        return self._default

    async def bind(
        self,
        template: bytes,
        tags: Iterable[str],
        record: Mapping[str, Any],
    ) -> RenderResult:
        return await asyncio.to_thread(self.bind_sync, template, list(tags), record)

    def bind_sync(
        self,
        template: bytes,
        tags: Iterable[str],
        record: Mapping[str, Any],
    ) -> RenderResult:
        """Synchronous body of bind(); runs in a worker thread.

        Args:
            template: Raw template bytes.
            tags: Placeholder tags as spelled in the template.
            record: Field record with canonical keys.

        Returns:
            RenderResult with attempts=1 on a clean render, 2 after a retry.
        """
        context, missing = self.build_context(tags, record)

        try:
            content = self._render(template, context)
            logger.info(f"Rendered document ({len(content)} bytes, {len(missing)} defaulted)")
            return RenderResult(
                ok=True,
                content=content,
                missing=tuple(missing),
                used_data=context,
                attempts=1,
            )
        except EngineRenderError as first:
            engine_tags = self.engine_tags(template)
            filled = self.force_fill(
                context,
                engine_tags + unresolved_names(first.detail, engine_tags) + first.unresolved,
            )
            for name in filled:
                canonical = normalize_tag(name)
                if canonical not in missing:
                    missing.append(canonical)
            logger.warning(
                f"Render attempt 1 failed: {first.detail}; "
                f"force-filled {filled or 'nothing'} and retrying"
            )

        try:
            content = self._render(template, context)
        except EngineRenderError as second:
            logger.error(f"Render retry failed: {second.detail}")
            return RenderResult(
                ok=False,
                missing=tuple(missing),
                used_data=context,
                attempts=2,
                error=BindRetryExhausted(second.detail, second.unresolved),
            )

        logger.info(f"Rendered document on retry ({len(content)} bytes)")
        return RenderResult(
            ok=True,
            content=content,
            missing=tuple(missing),
            used_data=context,
            attempts=2,
        )

    def build_context(
        self,
        tags: Iterable[str],
        record: Mapping[str, Any],
    ) -> tuple[dict[str, Any], list[str]]:
        """Build the substitution record handed to the engine.

        Every tag gets a value under its template spelling: the record's
        value for its canonical name, else the default.

        Returns:
            The context and the canonical names that were defaulted.
        """
        context: dict[str, Any] = {
            key: self._default if value is None else value
            for key, value in copy.deepcopy(dict(record)).items()
        }
        missing: list[str] = []

        for tag in sorted(set(tags)):
            canonical = normalize_tag(tag)
            value = resolve_path(record, canonical)
            if value is MISSING:
                if canonical not in missing:
                    missing.append(canonical)
                value = self._default
            elif value is None:
                value = self._default

            if not assign_path(context, tag, value):
                logger.warning(f"Cannot place a value for {tag!r}: path conflicts with record shape")

        return context, missing

    def force_fill(self, context: dict[str, Any], names: Iterable[str]) -> list[str]:
        """Give every name without a value in the context the default.

        Names are filled in order. A value already reachable (for example a
        flat "items.0" key) is also placed at its nested path, which is
        where the engine looks it up.

        Returns:
            The names that received the default value.
        """
        filled: list[str] = []
        for name in dict.fromkeys(names):
            value = resolve_path(context, name)
            if value is MISSING:
                value = self._default
                filled.append(name)
            if not assign_path(context, name, value):
                logger.warning(f"Cannot force-fill {name!r}: path conflicts with record shape")
        return filled

    def engine_tags(self, template: bytes) -> list[str]:
        """Return the tags of the template as the engine sees them.

        docxtpl merges tags split across runs before rendering, so this
        finds placeholders the raw XML scan cannot. Body, header and
        footer parts are read.
        """
        try:
            doc = DocxTemplate(io.BytesIO(template))
            doc.init_docx()
            xml = doc.patch_xml(doc.get_xml())
            for uri in (doc.HEADER_URI, doc.FOOTER_URI):
                for _, part in doc.get_headers_footers(uri):
                    xml += doc.patch_xml(doc.get_part_xml(part))
        except Exception as e:
            logger.warning(f"Could not read template tags through the engine: {e}")
            return []
        return list(dict.fromkeys(find_tags(xml)))

    def _render(self, template: bytes, context: dict[str, Any]) -> bytes:
        try:
            doc = DocxTemplate(io.BytesIO(template))
            doc.render(
                context,
                jinja_env=Environment(undefined=StrictUndefined),
                autoescape=self._autoescape,
            )
            buffer = io.BytesIO()
            doc.save(buffer)
        except UndefinedError as e:
            raise EngineRenderError(str(e), _UNDEFINED_NAME.findall(str(e))) from e
        except JinjaTemplateError as e:
            raise EngineRenderError(f"Template syntax error: {e}") from e
        except Exception as e:
            raise EngineRenderError(f"{type(e).__name__}: {e}") from e
        return buffer.getvalue()

    @property
    def supported_extensions(self) -> set[str]:
        """Return supported file extensions."""
        return {".docx"}
