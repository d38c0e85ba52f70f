"""Abstract base class for document conversion strategies.

The Strategy Pattern lets the conversion orchestrator try interchangeable
converters in priority order without knowing how each one works.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

MODE_REMOTE = "remote"
MODE_LOCAL = "local"
MODE_ORIGINAL = "original-format"

MEDIA_TYPES: dict[str, str] = {
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "odt": "application/vnd.oasis.opendocument.text",
}


def media_type_for(fmt: str) -> str:
    """Return the MIME type for a file format, defaulting to octet-stream."""
    return MEDIA_TYPES.get(fmt.lower(), "application/octet-stream")


@dataclass(frozen=True)
class ConvertedArtifact:
    """Bytes produced by a single successful strategy.

    Attributes:
        content: The artifact bytes.
        format: File format / extension without a dot (e.g. "pdf").
    """

    content: bytes
    format: str

    @property
    def media_type(self) -> str:
        return media_type_for(self.format)


@dataclass(frozen=True)
class StrategyAttempt:
    """Diagnostic record of one strategy's turn in the chain."""

    strategy: str
    ok: bool
    detail: str = ""
    elapsed: float = 0.0
    skipped: bool = False


@dataclass(frozen=True)
class ConversionOutcome:
    """Output of the Conversion Orchestrator.

    Attributes:
        ok: False only when every strategy in the chain failed.
        mode: Name of the strategy that produced the artifact.
        artifact: The produced artifact, None on failure.
        attempts: Per-strategy diagnostics in the order they were tried.
        error: Terminal failure when ok is False.
    """

    ok: bool
    mode: str | None = None
    artifact: ConvertedArtifact | None = None
    attempts: tuple[StrategyAttempt, ...] = field(default_factory=tuple)
    error: "AllConversionStrategiesFailed | None" = None

    @property
    def content(self) -> bytes:
        return self.artifact.content if self.artifact else b""

    @property
    def format(self) -> str | None:
        return self.artifact.format if self.artifact else None

    @property
    def degraded(self) -> bool:
        """True when an earlier strategy failed before this one succeeded."""
        return self.ok and any(not a.ok for a in self.attempts)


class BaseConverter(ABC):
    """Abstract base class for conversion strategies.

    All concrete converters must inherit from this class and implement
    `name` and `convert`. A converter signals failure by raising
    ConversionStrategyFailed; the orchestrator records it and moves on.

    Example:
        ```python
        class EchoConverter(BaseConverter):
            @property
            def name(self) -> str:
                return "echo"

            async def convert(self, document, *, filename, correlation_id):
                return ConvertedArtifact(content=document, format="docx")
        ```
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Mode label reported when this strategy succeeds."""
        ...

    @property
    def available(self) -> bool:
        """Whether the strategy can run in this environment at all."""
        return True

    @abstractmethod
    async def convert(
        self,
        document: bytes,
        *,
        filename: str,
        correlation_id: str,
    ) -> ConvertedArtifact:
        """Convert a bound document.

        Args:
            document: Bound document bytes in the template's native format.
            filename: Logical filename of the document (e.g. "Declaration.docx").
            correlation_id: Invocation token used for scratch paths and logs.

        Returns:
            The converted artifact.

        Raises:
            ConversionStrategyFailed: If this strategy cannot produce output.
        """
        ...


class ConversionStrategyFailed(Exception):
    """Raised by a single strategy; recorded by the orchestrator, never surfaced."""

    def __init__(
        self,
        strategy: str,
        detail: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(f"{strategy}: {detail}")
        self.strategy = strategy
        self.detail = detail
        self.status_code = status_code


class AllConversionStrategiesFailed(Exception):
    """Every strategy in the chain failed (pass-through missing from the chain)."""

    kind = "all_conversion_strategies_failed"

    def __init__(self, attempts: tuple[StrategyAttempt, ...]) -> None:
        summary = "; ".join(f"{a.strategy}: {a.detail}" for a in attempts)
        super().__init__(f"All conversion strategies failed ({summary})")
        self.attempts = attempts
        self.detail = str(self)
