"""
Text-to-graph extraction.
"""

from .extract import ExtractionReport, extract, extract_with_report
from .providers import GraphProvider, RemoteProvider, RulesProvider, get_provider

__all__ = [
    "ExtractionReport",
    "extract",
    "extract_with_report",
    "GraphProvider",
    "RemoteProvider",
    "RulesProvider",
    "get_provider",
]
