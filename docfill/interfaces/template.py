"""Template storage and binding interfaces.

Defines abstract base classes for loading packaged document templates and
binding field records into them, together with the result types and the
error taxonomy raised at these seams.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ValidationMode(str, Enum):
    """Validation Gate policy."""

    STRICT = "strict"
    LENIENT = "lenient"


@dataclass(frozen=True)
class ValidationReport:
    """Outcome of checking a field record against a template's tags.

    Attributes:
        tags: Canonical placeholder names required by the template.
        missing: Tags whose path could not be resolved in the record.
    """

    tags: tuple[str, ...]
    missing: tuple[str, ...]

    @property
    def complete(self) -> bool:
        """True when every tag resolved."""
        return not self.missing


@dataclass(frozen=True)
class RenderResult:
    """Output of a Data Binder run.

    Attributes:
        ok: Whether a bound document was produced.
        content: The bound document bytes (non-empty when ok).
        missing: Tags that had to be filled with the default value.
        used_data: The substitution record handed to the engine.
        attempts: Number of render attempts made (1 or 2).
        error: The terminal error when ok is False.
    """

    ok: bool
    content: bytes = b""
    missing: tuple[str, ...] = ()
    used_data: dict[str, Any] = field(default_factory=dict)
    attempts: int = 1
    error: "BindRetryExhausted | None" = None


class BaseTemplateStore(ABC):
    """Abstract base class for read-only template stores."""

    @abstractmethod
    def load(self, name: str) -> bytes:
        """Return the raw bytes of the named template.

        Raises:
            TemplateNotFound: If the name does not resolve.
        """

    @abstractmethod
    def list_templates(self) -> list[str]:
        """Return the names of all templates in the store."""

    def exists(self, name: str) -> bool:
        try:
            self.load(name)
        except TemplateNotFound:
            return False
        return True


class BaseTemplateBinder(ABC):
    """Abstract base class for data binding strategies.

    A binder substitutes a field record into a template and never raises
    for engine-level failures: those are reported through RenderResult.
    """

    @abstractmethod
    async def bind(
        self,
        template: bytes,
        tags: Iterable[str],
        record: Mapping[str, Any],
    ) -> RenderResult:
        """Bind a record into the template.

        Args:
            template: Raw template bytes.
            tags: Placeholder tags discovered in the template.
            record: Caller field record, keys already canonical.

        Returns:
            A RenderResult; ok is False only when the retry was exhausted.
        """


class TemplateError(Exception):
    """Base class for template-side failures surfaced to callers."""

    kind = "template_error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class MalformedTemplate(TemplateError):
    """Template bytes are not a readable archive or lack the main text part."""

    kind = "malformed_template"


class TemplateNotFound(TemplateError):
    """Requested template name does not resolve in the store."""

    kind = "template_not_found"

    def __init__(self, name: str) -> None:
        super().__init__(f"Template not found: {name}")
        self.name = name


class ValidationIncomplete(TemplateError):
    """Strict validation found placeholders the record does not supply."""

    kind = "validation_incomplete"

    def __init__(
        self,
        missing: Iterable[str],
        tags: Iterable[str],
        example_payload: Mapping[str, str],
    ) -> None:
        self.missing = list(missing)
        self.tags = list(tags)
        self.example_payload = dict(example_payload)
        super().__init__(
            f"Template requires {len(self.tags)} placeholders; "
            f"{len(self.missing)} are missing."
        )


class BindRetryExhausted(TemplateError):
    """The substitution engine failed again after the forced-fill retry."""

    kind = "bind_retry_exhausted"

    def __init__(self, detail: str, unresolved: Iterable[str] = ()) -> None:
        super().__init__(detail)
        self.unresolved = list(unresolved)
