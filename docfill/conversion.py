"""Conversion orchestrator.

Tries an ordered chain of conversion strategies and returns the first
usable artifact, recording why each earlier strategy was passed over.
"""

import logging
import time
from collections.abc import Sequence

from docfill.interfaces.converter import (
    AllConversionStrategiesFailed,
    BaseConverter,
    ConversionOutcome,
    ConversionStrategyFailed,
    StrategyAttempt,
)

logger = logging.getLogger(__name__)


class ConversionOrchestrator:
    """Ordered-fallback composition of conversion strategies.

    Strategy failures never propagate: the orchestrator always returns a
    ConversionOutcome, which is a failure only if every strategy failed.

    Example:
        ```python
        orchestrator = ConversionOrchestrator([
            CloudConvertConverter(api_key=key),
            LibreOfficeConverter(output_dir=tmp),
            PassthroughConverter(),
        ])
        outcome = await orchestrator.convert(docx, filename="Declaration.docx",
                                             correlation_id=cid)
        ```
    """

    def __init__(self, strategies: Sequence[BaseConverter]) -> None:
        if not strategies:
            raise ValueError("At least one conversion strategy is required")
        self._strategies = list(strategies)

    @property
    def strategies(self) -> list[BaseConverter]:
        return list(self._strategies)

    @property
    def chain(self) -> list[str]:
        return [s.name for s in self._strategies]

    async def convert(
        self,
        document: bytes,
        *,
        filename: str,
        correlation_id: str,
    ) -> ConversionOutcome:
        """Run the chain until a strategy produces a non-empty artifact.

        Args:
            document: Bound document bytes.
            filename: Logical filename of the document.
            correlation_id: Invocation token for logs and scratch paths.

        Returns:
            ConversionOutcome with the winning mode and every attempt made.
        """
        attempts: list[StrategyAttempt] = []

        for strategy in self._strategies:
            if not strategy.available:
                logger.info(f"[{correlation_id}] Skipping {strategy.name}: unavailable")
                attempts.append(
                    StrategyAttempt(strategy.name, ok=False, detail="unavailable", skipped=True)
                )
                continue

            started = time.monotonic()
            try:
                artifact = await strategy.convert(
                    document, filename=filename, correlation_id=correlation_id
                )
            except ConversionStrategyFailed as e:
                elapsed = time.monotonic() - started
                logger.warning(f"[{correlation_id}] {strategy.name} conversion failed: {e.detail}")
                attempts.append(StrategyAttempt(strategy.name, ok=False, detail=e.detail, elapsed=elapsed))
                continue
            except Exception as e:
                elapsed = time.monotonic() - started
                logger.error(
                    f"[{correlation_id}] {strategy.name} raised unexpectedly: {e}", exc_info=True
                )
                attempts.append(
                    StrategyAttempt(
                        strategy.name, ok=False, detail=f"{type(e).__name__}: {e}", elapsed=elapsed
                    )
                )
                continue

            elapsed = time.monotonic() - started
            if not artifact.content:
                logger.warning(f"[{correlation_id}] {strategy.name} returned an empty artifact")
                attempts.append(
                    StrategyAttempt(strategy.name, ok=False, detail="empty artifact", elapsed=elapsed)
                )
                continue

            attempts.append(StrategyAttempt(strategy.name, ok=True, elapsed=elapsed))
            logger.info(
                f"[{correlation_id}] Conversion succeeded via {strategy.name} "
                f"({artifact.format}, {len(artifact.content)} bytes, {elapsed:.2f}s)"
            )
            return ConversionOutcome(
                ok=True,
                mode=strategy.name,
                artifact=artifact,
                attempts=tuple(attempts),
            )

        error = AllConversionStrategiesFailed(tuple(attempts))
        logger.error(f"[{correlation_id}] {error}")
        return ConversionOutcome(ok=False, attempts=tuple(attempts), error=error)
