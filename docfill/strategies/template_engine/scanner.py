"""Placeholder tag scanner.

Reads the textual parts of a packaged Word document and extracts the
distinct `{{identifier}}` placeholders it contains.
"""

import io
import logging
import re
import zipfile

from docfill.interfaces.template import MalformedTemplate

logger = logging.getLogger(__name__)

MAIN_PART = "word/document.xml"

# `{{` + run without braces, whitespace or markup + `}}`; interior padding allowed
TAG_PATTERN = re.compile(r"{{\s*([^{}\s<>]+)\s*}}")

_SECONDARY_PART = re.compile(r"^word/(header|footer)\d*\.xml$")


def read_text_parts(template: bytes) -> dict[str, str]:
    """Return the XML text of the main, header and footer parts.

    Args:
        template: Raw template archive bytes.

    Returns:
        Mapping of part name to decoded XML, main part always present.

    Raises:
        MalformedTemplate: If the bytes are not a zip archive or the main part is absent.
    """
    if not isinstance(template, (bytes, bytearray)):
        raise MalformedTemplate(
            f"Template content must be bytes, got {type(template).__name__}"
        )

    try:
        with zipfile.ZipFile(io.BytesIO(template)) as archive:
            names = archive.namelist()
            if MAIN_PART not in names:
                raise MalformedTemplate(f"Template archive has no {MAIN_PART} part")

            parts: dict[str, str] = {}
            for name in names:
                if name == MAIN_PART or _SECONDARY_PART.match(name):
                    parts[name] = archive.read(name).decode("utf-8")
            return parts

    except MalformedTemplate:
        raise
    except zipfile.BadZipFile as e:
        raise MalformedTemplate(f"Template is not a readable archive: {e}") from e
    except UnicodeDecodeError as e:
        raise MalformedTemplate(f"Template part is not valid UTF-8: {e}") from e
    except (OSError, RuntimeError, ValueError) as e:
        raise MalformedTemplate(f"Template archive could not be read: {e}") from e


def clean_tag(raw: str) -> str:
    """Strip a filter suffix and padding, e.g. "name|upper" -> "name"."""
    return raw.split("|", 1)[0].strip()


def find_tags(text: str) -> list[str]:
    """Return the cleaned tags in a text in order of appearance (with repeats)."""
    tags = []
    for match in TAG_PATTERN.finditer(text):
        tag = clean_tag(match.group(1))
        if tag:
            tags.append(tag)
    return tags


def scan_tags(template: bytes) -> set[str]:
    """Extract the set of distinct placeholder tags from a template.

    Args:
        template: Raw template archive bytes.

    Returns:
        Distinct tag names exactly as spelled in the template.

    Raises:
        MalformedTemplate: If the template cannot be read.
    """
    found: set[str] = set()
    for part_name, xml in read_text_parts(template).items():
        part_tags = find_tags(xml)
        if part_tags:
            logger.debug(f"{part_name}: {len(part_tags)} placeholder(s)")
        found.update(part_tags)

    logger.info(f"Scanned template: {len(found)} distinct placeholder(s)")
    return found
