"""Placeholder tag normalization.

Maps legacy UPPER_SNAKE placeholder spellings onto the lower-camel field
names used by form submissions, and can produce a repaired copy of a
template with its tags rewritten to the canonical spelling.
"""

import io
import logging
import re
import zipfile
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from docfill.strategies.template_engine.scanner import TAG_PATTERN, clean_tag, read_text_parts

logger = logging.getLogger(__name__)

LEGACY_TAG_MAP: Mapping[str, str] = MappingProxyType(
    {
        "FULL_NAME": "fullName",
        "WITNESS_1_NAME": "witness1Name",
        "WITNESS_1_EMAIL": "witness1Email",
        "WITNESS_2_NAME": "witness2Name",
        "WITNESS_2_EMAIL": "witness2Email",
        "SIGNATURE_DATE": "signatureDate",
    }
)

# Must start with a letter so the converted form never looks legacy again
_LEGACY_SHAPE = re.compile(r"^_*[A-Z][A-Z0-9_]*$")


def is_legacy_tag(tag: str) -> bool:
    return tag in LEGACY_TAG_MAP or bool(_LEGACY_SHAPE.match(tag))


def normalize_tag(tag: str) -> str:
    """Return the canonical field name for a placeholder tag.

    Exact legacy map hits win; other UPPER_SNAKE tags are converted to
    lowerCamel; anything else passes through untouched. Idempotent.

    Args:
        tag: Placeholder or record key as supplied.

    Returns:
        The canonical spelling.
    """
    if tag in LEGACY_TAG_MAP:
        return LEGACY_TAG_MAP[tag]

    if not _LEGACY_SHAPE.match(tag):
        return tag

    segments = [s.lower() for s in tag.split("_") if s]
    return segments[0] + "".join(s[:1].upper() + s[1:] for s in segments[1:])


def normalize_record(record: Mapping[str, Any]) -> dict[str, Any]:
    """Normalize the top-level keys of a field record.

    When a legacy key and its canonical spelling are both supplied, the
    canonical key's value is kept.
    """
    normalized: dict[str, Any] = {}
    explicit: set[str] = set()

    for key, value in record.items():
        key = str(key)
        canonical = normalize_tag(key)
        if canonical == key:
            normalized[key] = value
            explicit.add(key)
        elif canonical not in explicit:
            normalized[canonical] = value

    collisions = [
        k for k in record if normalize_tag(str(k)) != str(k) and normalize_tag(str(k)) in explicit
    ]
    if collisions:
        logger.debug(f"Ignored legacy keys shadowed by canonical keys: {collisions}")

    return normalized


@dataclass(frozen=True)
class RepairReport:
    """A repaired template archive and the changes made to it.

    Attributes:
        content: The new archive bytes (the source is left untouched).
        changes: Human-readable notes, one per rewritten tag spelling.
    """

    content: bytes
    changes: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.changes)


def _rewrite_tags(xml: str, changes: list[str]) -> str:
    def replace(match: re.Match) -> str:
        original = match.group(0)
        canonical = normalize_tag(clean_tag(match.group(1)))
        rewritten = "{{" + canonical + "}}"
        if rewritten != original:
            note = f"Renamed {original} -> {rewritten}"
            if note not in changes:
                changes.append(note)
        return rewritten

    return TAG_PATTERN.sub(replace, xml)


def repair_template(template: bytes) -> RepairReport:
    """Build a copy of a template with every tag in canonical form.

    Whitespace inside braces is trimmed, filter suffixes are dropped, and
    legacy names are renamed. Every other archive member is copied as is.

    Args:
        template: Raw template archive bytes.

    Returns:
        RepairReport with the new bytes and the change notes.

    Raises:
        MalformedTemplate: If the template cannot be read.
    """
    # Validates the archive and main part up front
    read_text_parts(template)

    changes: list[str] = []
    output = io.BytesIO()

    with zipfile.ZipFile(io.BytesIO(template)) as source, zipfile.ZipFile(
        output, "w", compression=zipfile.ZIP_DEFLATED
    ) as target:
        for info in source.infolist():
            data = source.read(info.filename)
            if info.filename.endswith(".xml"):
                try:
                    xml = data.decode("utf-8")
                except UnicodeDecodeError:
                    target.writestr(info, data)
                    continue
                data = _rewrite_tags(xml, changes).encode("utf-8")
            target.writestr(info, data)

    logger.info(f"Template repair produced {len(changes)} change(s)")
    return RepairReport(content=output.getvalue(), changes=changes)
