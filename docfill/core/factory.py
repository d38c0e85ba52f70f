"""Component Factory for strategy instantiation.

The Factory Pattern lets the service assemble its conversion chain,
binder, template store and metrics store from configuration without the
pipeline knowing which concrete strategies it is talking to.
"""

import logging

from docfill.conversion import ConversionOrchestrator
from docfill.core.config import Settings, get_settings
from docfill.interfaces.converter import BaseConverter
from docfill.interfaces.metrics import BaseMetricsStore
from docfill.interfaces.template import BaseTemplateBinder, BaseTemplateStore
from docfill.pipeline import RenderPipeline
from docfill.strategies.converters import (
    CloudConvertConverter,
    LibreOfficeConverter,
    PassthroughConverter,
)
from docfill.strategies.metrics import InMemoryMetricsStore
from docfill.strategies.template_engine import DocxTemplateBinder, FileSystemTemplateStore

logger = logging.getLogger(__name__)


class ComponentFactory:
    """Factory for creating component instances based on configuration.

    Example:
        ```python
        factory = ComponentFactory(get_settings())

        pipeline = factory.get_pipeline()
        result = await pipeline.run("CommonCarryDeclaration.docx", record)
        ```
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the factory with optional settings.

        Args:
            settings: Application settings. If None, uses global settings.
        """
        self._settings = settings or get_settings()
        self._store_cache: BaseTemplateStore | None = None
        self._binder_cache: BaseTemplateBinder | None = None
        self._metrics_cache: BaseMetricsStore | None = None
        self._orchestrator_cache: ConversionOrchestrator | None = None
        self._pipeline_cache: RenderPipeline | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    def get_converter(self, strategy: str) -> BaseConverter:
        """Get a conversion strategy by name.

        Args:
            strategy: One of 'remote', 'local', 'original-format'.

        Returns:
            A BaseConverter implementation instance.

        Raises:
            ValueError: If the strategy name is unknown.
        """
        logger.info(f"Instantiating converter: {strategy}")

        match strategy:
            case "remote":
                if not self._settings.cloudconvert_api_key:
                    logger.warning("CLOUDCONVERT_API_KEY is not set; remote conversion will be skipped")
                return CloudConvertConverter(
                    api_key=self._settings.cloudconvert_api_key,
                    base_url=self._settings.cloudconvert_base_url,
                    output_format=self._settings.target_format,
                    poll_interval=self._settings.remote_poll_interval,
                    max_attempts=self._settings.remote_max_attempts,
                    timeout=self._settings.remote_timeout,
                )
            case "local":
                return LibreOfficeConverter(
                    output_dir=self._settings.output_dir,
                    binary=self._settings.libreoffice_binary,
                    output_format=self._settings.target_format,
                    timeout=self._settings.local_timeout,
                    keep_artifacts=self._settings.keep_artifacts,
                )
            case "original-format":
                return PassthroughConverter()
            case _:
                raise ValueError(
                    f"Unknown conversion strategy: {strategy}. "
                    f"Valid options: 'remote', 'local', 'original-format'"
                )

    def get_orchestrator(self) -> ConversionOrchestrator:
        """Get the conversion orchestrator for the configured chain."""
        if self._orchestrator_cache is None:
            strategies = [self.get_converter(name) for name in self._settings.conversion_chain]
            self._orchestrator_cache = ConversionOrchestrator(strategies)
            logger.info(f"Conversion chain: {' -> '.join(self._orchestrator_cache.chain)}")

        return self._orchestrator_cache

    def get_template_store(self) -> BaseTemplateStore:
        if self._store_cache is None:
            logger.info(f"Instantiating template store: {self._settings.template_dir}")
            self._store_cache = FileSystemTemplateStore(self._settings.template_dir)

        return self._store_cache

    def get_binder(self) -> BaseTemplateBinder:
        if self._binder_cache is None:
            self._binder_cache = DocxTemplateBinder()

        return self._binder_cache

    def get_metrics_store(self) -> BaseMetricsStore:
        if self._metrics_cache is None:
            self._metrics_cache = InMemoryMetricsStore()

        return self._metrics_cache

    def get_pipeline(self) -> RenderPipeline:
        """Get the render pipeline wired from the other components.

        Returns:
            A RenderPipeline instance.
        """
        if self._pipeline_cache is None:
            self._pipeline_cache = RenderPipeline(
                store=self.get_template_store(),
                binder=self.get_binder(),
                orchestrator=self.get_orchestrator(),
                metrics=self.get_metrics_store(),
                validation_mode=self._settings.validation_mode,
                default_template=self._settings.default_template,
            )

        return self._pipeline_cache

    def clear_cache(self) -> None:
        """Clear all cached component instances.

        This forces new instances to be created on next access.
        Useful for testing or when settings change.
        """
        self._store_cache = None
        self._binder_cache = None
        self._metrics_cache = None
        self._orchestrator_cache = None
        self._pipeline_cache = None
        logger.debug("Component factory cache cleared")


# Global factory instance
_factory: ComponentFactory | None = None


def get_factory() -> ComponentFactory:
    """Get or create the global ComponentFactory instance.

    Returns:
        The singleton ComponentFactory instance.
    """
    global _factory
    if _factory is None:
        _factory = ComponentFactory()
    return _factory
