"""File system template store.

Serves packaged document templates from a read-only directory.
"""

import logging
from pathlib import Path

from docfill.interfaces.template import BaseTemplateStore, TemplateNotFound

logger = logging.getLogger(__name__)


class FileSystemTemplateStore(BaseTemplateStore):
    """Looks templates up by exact filename inside a single directory.

    The store never writes: repaired or rendered copies go elsewhere.
    """

    def __init__(self, root: Path | str, extensions: set[str] | None = None) -> None:
        """Initialize the store.

        Args:
            root: Directory holding the template archives.
            extensions: File extensions listed by list_templates().
        """
        self._root = Path(root)
        self._extensions = extensions or {".docx"}

    @property
    def root(self) -> Path:
        return self._root

    def load(self, name: str) -> bytes:
        """Read a template's bytes.

        Args:
            name: Exact filename of the template (no directories).

        Returns:
            The raw archive bytes.

        Raises:
            TemplateNotFound: If the name is not a plain filename or no such file exists.
        """
        if not name or Path(name).name != name or name in (".", ".."):
            logger.warning(f"Rejected template name: {name!r}")
            raise TemplateNotFound(name)

        path = self._root / name
        if not path.is_file():
            raise TemplateNotFound(name)

        content = path.read_bytes()
        logger.debug(f"Loaded template {name} ({len(content)} bytes)")
        return content

    def list_templates(self) -> list[str]:
        if not self._root.is_dir():
            logger.warning(f"Template directory does not exist: {self._root}")
            return []
        return sorted(
            p.name
            for p in self._root.iterdir()
            if p.is_file() and p.suffix.lower() in self._extensions
        )
