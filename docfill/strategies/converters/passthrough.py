"""Pass-through converter.

Returns the bound document unconverted, in the template's own format.
"""

import logging
from pathlib import Path

from docfill.interfaces.converter import MODE_ORIGINAL, BaseConverter, ConvertedArtifact

logger = logging.getLogger(__name__)


class PassthroughConverter(BaseConverter):
    """Last-resort strategy: hands back the bytes already in hand.

    This strategy cannot fail, which is what lets the chain guarantee the
    caller always receives a usable artifact.
    """

    def __init__(self, default_format: str = "docx") -> None:
        self._default_format = default_format

    @property
    def name(self) -> str:
        return MODE_ORIGINAL

    async def convert(
        self,
        document: bytes,
        *,
        filename: str,
        correlation_id: str,
    ) -> ConvertedArtifact:
        fmt = Path(filename).suffix.lstrip(".").lower() or self._default_format
        logger.info(f"[{correlation_id}] Returning {fmt} document unconverted")
        return ConvertedArtifact(content=document, format=fmt)
