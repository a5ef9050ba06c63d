import logging
import os
from typing import List

from catbuilder.models import CatalogBuildError, ClassifiedEntries, FileKind

logger = logging.getLogger(__name__)

# Suffix matching is case-sensitive.
SUFFIXES = {
    ".xsd": FileKind.SCHEMA,
    ".xml": FileKind.CLASSIFICATION,
    ".dtd": FileKind.DTD,
}


def is_hidden(name: str) -> bool:
    return name.startswith(".")


def kind_of(name: str):
    """Returns the FileKind for a file name, or None when the suffix is not indexed."""
    for suffix, kind in SUFFIXES.items():
        if name.endswith(suffix):
            return kind
    return None


def classify_directory(path: str, sort_entries: bool = True) -> ClassifiedEntries:
    """
    Buckets the immediate entries of a directory into subdirectories, schemas,
    classification schemes and DTDs.

    Hidden entries (leading ".") are dropped entirely. A subdirectory never lands
    in a file bucket even when its name carries an indexed suffix.

    Args:
        path (str): Directory to list.
        sort_entries (bool): Sort each bucket by name. When False the buckets keep
            the order reported by the filesystem.

    Returns:
        ClassifiedEntries: The bucketed names (names only, not paths).

    Raises:
        CatalogBuildError: If the directory cannot be listed.
    """
    subdirectories: List[str] = []
    buckets = {kind: [] for kind in FileKind}

    try:
        with os.scandir(path) as it:
            for entry in it:
                if is_hidden(entry.name):
                    continue
                if entry.is_dir():
                    subdirectories.append(entry.name)
                    continue
                kind = kind_of(entry.name)
                if kind is not None:
                    buckets[kind].append(entry.name)
    except OSError as e:
        raise CatalogBuildError(f"cannot open directory {path}: {e.strerror or e}", path, e) from e

    if sort_entries:
        subdirectories.sort()
        for names in buckets.values():
            names.sort()

    logger.debug(
        "classified %s: %d subdirectories, %d schemas, %d classifications, %d dtds",
        path,
        len(subdirectories),
        len(buckets[FileKind.SCHEMA]),
        len(buckets[FileKind.CLASSIFICATION]),
        len(buckets[FileKind.DTD]),
    )

    return ClassifiedEntries(
        subdirectories=tuple(subdirectories),
        schemas=tuple(buckets[FileKind.SCHEMA]),
        classifications=tuple(buckets[FileKind.CLASSIFICATION]),
        dtds=tuple(buckets[FileKind.DTD]),
    )
