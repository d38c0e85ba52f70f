"""Concrete conversion strategy implementations."""

from docfill.strategies.converters.cloudconvert import CloudConvertConverter
from docfill.strategies.converters.libreoffice import LibreOfficeConverter
from docfill.strategies.converters.passthrough import PassthroughConverter

__all__ = [
    "CloudConvertConverter",
    "LibreOfficeConverter",
    "PassthroughConverter",
]
