"""
catbuilder: regenerate OASIS XML Catalog files for a three-tier library of
W3C XML Schemas, TV-Anytime/DVB Classification Schemes and DTDs.
"""

from .classifier import classify_directory
from .diagnostics import CollectingDiagnostics, ConsoleDiagnostics, Diagnostics, LoggingDiagnostics
from .extractor import NamespaceExtractor
from .models import (
    BuildOptions,
    CatalogBuildError,
    CatalogEntry,
    ClassifiedEntries,
    ExtractionResult,
    FileKind,
    Group,
    Outcome,
)
from .writer import CatalogBuilder, build_catalogs

__all__ = [
    "CatalogBuilder",
    "build_catalogs",
    "classify_directory",
    "NamespaceExtractor",
    "Diagnostics",
    "ConsoleDiagnostics",
    "LoggingDiagnostics",
    "CollectingDiagnostics",
    "BuildOptions",
    "CatalogBuildError",
    "CatalogEntry",
    "ClassifiedEntries",
    "ExtractionResult",
    "FileKind",
    "Group",
    "Outcome",
]
