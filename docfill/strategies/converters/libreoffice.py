"""LibreOffice-based document converter.

Runs a headless `soffice` on the host to convert the bound document.
"""

import asyncio
import logging
import shutil
from pathlib import Path

from docfill.interfaces.converter import (
    MODE_LOCAL,
    BaseConverter,
    ConversionStrategyFailed,
    ConvertedArtifact,
)

logger = logging.getLogger(__name__)


class LibreOfficeConverter(BaseConverter):
    """Local conversion strategy using a LibreOffice binary.

    Each invocation works in its own directory under the output root,
    keyed by correlation id, including a private LibreOffice profile so
    concurrent conversions do not contend for the same user installation.
    """

    def __init__(
        self,
        output_dir: Path | str,
        binary: str = "soffice",
        output_format: str = "pdf",
        timeout: float = 120.0,
        keep_artifacts: bool = False,
    ) -> None:
        """Initialize the LibreOffice converter.

        Args:
            output_dir: Scratch root for per-invocation directories.
            binary: Command name or path of the LibreOffice executable.
            output_format: Format passed to --convert-to.
            timeout: Seconds before the process is killed.
            keep_artifacts: Leave the scratch directory behind for debugging.
        """
        self._output_dir = Path(output_dir)
        self._binary = binary
        self._output_format = output_format
        self._timeout = timeout
        self._keep_artifacts = keep_artifacts

    @property
    def name(self) -> str:
        return MODE_LOCAL

    @property
    def available(self) -> bool:
        return shutil.which(self._binary) is not None

    async def convert(
        self,
        document: bytes,
        *,
        filename: str,
        correlation_id: str,
    ) -> ConvertedArtifact:
        """Convert a document with headless LibreOffice.

        Raises:
            ConversionStrategyFailed: If the binary is missing, exits non-zero,
                times out, or leaves no output file.
        """
        executable = shutil.which(self._binary)
        if executable is None:
            raise ConversionStrategyFailed(self.name, f"{self._binary} not found on PATH")

        work_dir = self._output_dir / correlation_id
        try:
            work_dir.mkdir(parents=True, exist_ok=True)
            input_path = work_dir / Path(filename).name
            input_path.write_bytes(document)
            expected = work_dir / f"{input_path.stem}.{self._output_format}"

            logger.info(f"[{correlation_id}] Running {self._binary} on {input_path.name}")

            process = await asyncio.create_subprocess_exec(
                executable,
                f"-env:UserInstallation={(work_dir / 'profile').resolve().as_uri()}",
                "--headless",
                "--convert-to",
                self._output_format,
                "--outdir",
                str(work_dir),
                str(input_path),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            try:
                _, stderr = await asyncio.wait_for(process.communicate(), timeout=self._timeout)
            except TimeoutError as e:
                process.kill()
                await process.wait()
                raise ConversionStrategyFailed(
                    self.name, f"timed out after {self._timeout:g}s"
                ) from e

            if process.returncode != 0:
                message = (stderr or b"").decode("utf-8", errors="replace").strip()[:500]
                raise ConversionStrategyFailed(
                    self.name, f"exited with status {process.returncode}: {message}"
                )

            if not expected.is_file():
                raise ConversionStrategyFailed(self.name, f"no output file at {expected.name}")

            content = expected.read_bytes()
            logger.info(f"[{correlation_id}] Local conversion produced {len(content)} bytes")
            return ConvertedArtifact(content=content, format=self._output_format)

        except ConversionStrategyFailed:
            raise
        except OSError as e:
            raise ConversionStrategyFailed(self.name, f"could not run {self._binary}: {e}") from e
        finally:
            if not self._keep_artifacts:
                shutil.rmtree(work_dir, ignore_errors=True)
