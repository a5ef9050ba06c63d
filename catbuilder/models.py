from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class FileKind(str, Enum):
    """Declared kind of a metadata file, derived from its suffix."""

    SCHEMA = "schema"
    CLASSIFICATION = "classification"
    DTD = "dtd"


class Tier(str, Enum):
    """
    Position of a directory in the three-tier library hierarchy.

    ROOT directories get a forwarding catalog, ORIGINATOR directories get a
    content catalog, and CONTENT directories (version or deeper) are indexed.
    """

    ROOT = "root"
    ORIGINATOR = "originator"
    CONTENT = "version-or-deeper"


@dataclass(frozen=True)
class DirectoryNode:
    """
    A directory visited during traversal.

    Attributes:
        path (str): Filesystem path of the directory.
        tier (Tier): Where the directory sits in the hierarchy.
        base (str): Path relative to the enclosing catalog, "" for tiers 1 and 2.
    """

    path: str
    tier: Tier
    base: str = ""


@dataclass(frozen=True)
class ClassifiedEntries:
    """
    Snapshot of one directory's immediate, non-hidden entries bucketed by type.
    """

    subdirectories: Tuple[str, ...] = ()
    schemas: Tuple[str, ...] = ()
    classifications: Tuple[str, ...] = ()
    dtds: Tuple[str, ...] = ()

    @property
    def file_count(self) -> int:
        return len(self.schemas) + len(self.classifications) + len(self.dtds)


@dataclass(frozen=True)
class CatalogEntry:
    """A `<uri>` catalog entry mapping a namespace to a file relative to its group."""

    name: str
    uri: str


class Outcome(str, Enum):
    EXTRACTED = "extracted"
    NO_NAMESPACE = "no-namespace"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class ExtractionResult:
    """
    Tagged outcome of reading a namespace out of a schema or classification file.

    Attributes:
        outcome (Outcome): Which of the three outcomes applies.
        namespace (Optional[str]): The trimmed namespace, set only for EXTRACTED.
        detail (Optional[str]): Extra context for UNRECOGNIZED (e.g. a parser error).
    """

    outcome: Outcome
    namespace: Optional[str] = None
    detail: Optional[str] = None

    @classmethod
    def extracted(cls, namespace: str) -> "ExtractionResult":
        return cls(Outcome.EXTRACTED, namespace=namespace)

    @classmethod
    def no_namespace(cls) -> "ExtractionResult":
        return cls(Outcome.NO_NAMESPACE)

    @classmethod
    def unrecognized(cls, detail: Optional[str] = None) -> "ExtractionResult":
        return cls(Outcome.UNRECOGNIZED, detail=detail)

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.EXTRACTED


@dataclass
class Group:
    """
    In-memory view of a `<group>`: entries for one content directory plus nested groups.

    Used by callers that want the catalog structure without reading the files back.
    """

    base: str
    entries: List[CatalogEntry] = field(default_factory=list)
    groups: List["Group"] = field(default_factory=list)


@dataclass(frozen=True)
class BuildOptions:
    """
    Knobs for a catalog build.

    Attributes:
        catalog_name (str): File name of every generated catalog.
        sort_entries (bool): Sort directory entries by name instead of keeping
            the filesystem listing order, so that repeated runs are byte-identical.
        warn_duplicates (bool): Warn when two files in one originator catalog
            resolve to the same namespace. Both entries are kept either way.
    """

    catalog_name: str = "catalog.xml"
    sort_entries: bool = True
    warn_duplicates: bool = True


class CatalogBuildError(Exception):
    """
    Fatal I/O failure: a directory could not be listed or a catalog could not be written.
    """

    def __init__(self, message: str, path: str, cause: Optional[OSError] = None):
        super().__init__(message)
        self.path = path
        self.cause = cause
