"""Exporters that turn scan results into files."""

from .exporter import ExportError, ExportOptions, SUPPORTED_FORMATS, SignatureExporter, parse_formats

__all__ = ["ExportError", "ExportOptions", "SUPPORTED_FORMATS", "SignatureExporter", "parse_formats"]
