"""Validation gate.

Decides whether a field record covers every placeholder of a template
before binding is attempted, and synthesizes an example payload callers
can use to correct an incomplete submission.
"""

import logging
from collections.abc import Iterable, Mapping, MutableMapping, Sequence
from typing import Any

from docfill.interfaces.template import ValidationIncomplete, ValidationReport
from docfill.strategies.template_engine.normalizer import normalize_tag

logger = logging.getLogger(__name__)

EXAMPLE_VALUE = "<value>"


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def _step(current: Any, segment: str) -> Any:
    if isinstance(current, Mapping):
        return current.get(segment, MISSING)
    if segment.isdigit() and isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
        index = int(segment)
        return current[index] if index < len(current) else MISSING
    return MISSING


def resolve_path(record: Mapping[str, Any], path: str) -> Any:
    """Look a tag up in a record, following dotted segments.

    An exact flat key wins over dotted traversal; numeric segments index
    into lists. Returns MISSING when the path does not resolve. Empty
    strings and None are present values.
    """
    if not path:
        return MISSING
    if path in record:
        return record[path]

    current: Any = record
    for segment in path.split("."):
        if current is None:
            return MISSING
        current = _step(current, segment)
        if current is MISSING:
            return MISSING
    return current


def has_path(record: Mapping[str, Any], path: str) -> bool:
    return resolve_path(record, path) is not MISSING


def _container_for(segment: str) -> Any:
    return [] if segment.isdigit() else {}


def assign_path(target: MutableMapping[str, Any], path: str, value: Any) -> bool:
    """Set a value at a dotted path, creating intermediate containers.

    A missing container is created as a list when the segment that indexes
    it is numeric (the engine reads `items.0` as `items[0]`), otherwise as
    a mapping. Lists are padded with None up to the index.

    Returns:
        False when an intermediate segment holds something that is neither
        a mapping nor a list indexed by a numeric segment.
    """
    segments = path.split(".")
    current: Any = target
    for position, segment in enumerate(segments):
        last = position == len(segments) - 1

        if isinstance(current, MutableMapping):
            if last:
                current[segment] = value
                return True
            if segment not in current or current[segment] is None:
                current[segment] = _container_for(segments[position + 1])
            current = current[segment]
            continue

        if segment.isdigit() and isinstance(current, list):
            index = int(segment)
            if index >= len(current):
                current.extend([None] * (index + 1 - len(current)))
            if last:
                current[index] = value
                return True
            if current[index] is None:
                current[index] = _container_for(segments[position + 1])
            current = current[index]
            continue

        return False
    return False


def validate(tags: Iterable[str], record: Mapping[str, Any]) -> ValidationReport:
    """Check which normalized tags the record cannot resolve.

    Args:
        tags: Placeholder tags as scanned (normalized here).
        record: Field record with canonical keys.

    Returns:
        ValidationReport listing every missing tag (no short-circuit).
    """
    canonical = sorted({normalize_tag(t) for t in tags})
    missing = tuple(t for t in canonical if not has_path(record, t))

    if missing:
        logger.info(f"Validation: {len(missing)} of {len(canonical)} tag(s) missing: {list(missing)}")
    return ValidationReport(tags=tuple(canonical), missing=missing)


def example_payload(tags: Iterable[str]) -> dict[str, str]:
    """Map every canonical tag to a placeholder value."""
    return {t: EXAMPLE_VALUE for t in sorted({normalize_tag(t) for t in tags})}


def require_complete(tags: Iterable[str], record: Mapping[str, Any]) -> ValidationReport:
    """Strict policy: validate and raise when anything is missing.

    Raises:
        ValidationIncomplete: With the missing list and an example payload.
    """
    report = validate(tags, record)
    if not report.complete:
        raise ValidationIncomplete(
            missing=report.missing,
            tags=report.tags,
            example_payload=example_payload(report.tags),
        )
    return report
