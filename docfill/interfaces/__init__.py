"""Abstract base classes for rendering and conversion strategies."""

from docfill.interfaces.converter import (
    AllConversionStrategiesFailed,
    BaseConverter,
    ConversionOutcome,
    ConversionStrategyFailed,
    ConvertedArtifact,
    StrategyAttempt,
)
from docfill.interfaces.metrics import BaseMetricsStore
from docfill.interfaces.template import (
    BaseTemplateBinder,
    BaseTemplateStore,
    BindRetryExhausted,
    MalformedTemplate,
    RenderResult,
    TemplateError,
    TemplateNotFound,
    ValidationIncomplete,
    ValidationMode,
    ValidationReport,
)

__all__ = [
    "BaseConverter",
    "BaseMetricsStore",
    "BaseTemplateBinder",
    "BaseTemplateStore",
    "ConvertedArtifact",
    "ConversionOutcome",
    "StrategyAttempt",
    "RenderResult",
    "ValidationMode",
    "ValidationReport",
    "TemplateError",
    "MalformedTemplate",
    "TemplateNotFound",
    "ValidationIncomplete",
    "BindRetryExhausted",
    "ConversionStrategyFailed",
    "AllConversionStrategiesFailed",
]
