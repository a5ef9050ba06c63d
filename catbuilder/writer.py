import logging
import os
import posixpath
from typing import Dict, List, Optional

from lxml import etree

from catbuilder.classifier import classify_directory
from catbuilder.diagnostics import ConsoleDiagnostics, Diagnostics
from catbuilder.extractor import NamespaceExtractor
from catbuilder.models import (
    BuildOptions,
    CatalogBuildError,
    CatalogEntry,
    DirectoryNode,
    ExtractionResult,
    FileKind,
    Group,
    Outcome,
    Tier,
)

logger = logging.getLogger(__name__)

CATALOG_NS = "urn:oasis:names:tc:entity:xmlns:xml:catalog"
XML_NS = "http://www.w3.org/XML/1998/namespace"

XML_DECLARATION = b'<?xml version="1.0" encoding="UTF-8"?>\n'
DOCTYPE = (
    b'<!DOCTYPE catalog PUBLIC "-//OASIS//DTD XML Catalogs V1.1//EN" '
    b'"http://www.oasis-open.org/committees/entity/release/1.1/catalog.dtd">\n'
)

SECTION_COMMENTS = {
    FileKind.SCHEMA: " W3C XML Schemas ",
    FileKind.CLASSIFICATION: " Classification Schemes ",
    FileKind.DTD: " DTDs ",
}

WARNINGS = {
    (FileKind.SCHEMA, Outcome.NO_NAMESPACE): (
        "W3C XML Schema with no target namespace; no catalog entry generated"
    ),
    (FileKind.SCHEMA, Outcome.UNRECOGNIZED): (
        ".xsd file with no W3C XML <schema> element; no catalog entry generated"
    ),
    (FileKind.CLASSIFICATION, Outcome.NO_NAMESPACE): (
        "Classification Scheme with no namespace; no catalog entry generated"
    ),
    (FileKind.CLASSIFICATION, Outcome.UNRECOGNIZED): (
        ".xml file is not a recognizable XML document; no catalog entry generated"
    ),
}

DTD_FIXME_COMMENT = (
    " FIXME: please fill in the public and/or system ID for this DTD, "
    "and remove any unneeded entry "
)
DTD_FIXME_MESSAGE = "DTD entry requires manually setting a public and/or system ID"
UNREPRESENTABLE_FILE = "file name cannot be represented in an XML catalog; no catalog entry generated"
UNREPRESENTABLE_DIR = "directory name cannot be represented in an XML catalog; subtree skipped"


def _tag(local_name: str) -> str:
    return f"{{{CATALOG_NS}}}{local_name}"


def _representable(name: str) -> bool:
    """True when lxml accepts ``name`` as an attribute value (valid UTF-8, no control characters)."""
    try:
        etree.Element("name", value=name)
    except ValueError:
        # UnicodeEncodeError for undecodable names is a ValueError too
        return False
    return True


def _display(path: str) -> str:
    return path.encode("utf-8", "backslashreplace").decode("utf-8")


class CatalogBuilder:
    """
    Regenerates XML Catalog files for a three-tier metadata library.

        library/              <- tier 1: catalog.xml with <nextCatalog> per originator
          W3C/                <- tier 2: catalog.xml with one <group> per version
            2015/             <- tier 3: *.xsd, *.xml, *.dtd are indexed here...
              profiles/       <- ...and in every directory below, as nested groups

    Every catalog is truncated and rewritten. Paths in catalogs are always relative
    to the catalog's own directory. The current path is carried explicitly through
    the recursion; the process working directory is never changed.
    """

    def __init__(
        self,
        diagnostics: Optional[Diagnostics] = None,
        options: Optional[BuildOptions] = None,
        extractor: Optional[NamespaceExtractor] = None,
    ):
        self.diagnostics = diagnostics or ConsoleDiagnostics()
        self.options = options or BuildOptions()
        self.extractor = extractor or NamespaceExtractor()

    # --- tier 1 -----------------------------------------------------------

    def build_root(self, path: str) -> List[str]:
        """
        Writes the forwarding catalog for a library root, then every originator catalog.

        Files directly inside the root are never indexed.

        Returns:
            List[str]: Paths of all catalog files written, root catalog first.

        Raises:
            CatalogBuildError: A directory could not be listed or a catalog could not be written.
        """
        node = DirectoryNode(path, Tier.ROOT)
        entries = classify_directory(node.path, self.options.sort_entries)
        catalog_path = os.path.join(node.path, self.options.catalog_name)

        subdirectories = self._usable(node.path, entries.subdirectories, UNREPRESENTABLE_DIR)

        with self._open_catalog(catalog_path) as f:
            root = self._new_catalog()
            for subdir in subdirectories:
                etree.SubElement(
                    root,
                    _tag("nextCatalog"),
                    catalog=posixpath.join(subdir, self.options.catalog_name),
                )
            self._write(f, root, catalog_path)

        written = [catalog_path]
        for subdir in subdirectories:
            written.append(self.build_originator(os.path.join(node.path, subdir)))
        return written

    # --- tier 2 -----------------------------------------------------------

    def build_originator(self, path: str) -> str:
        """
        Writes the content catalog for one originator directory: one top-level
        <group> per immediate subdirectory, with deeper directories nested inside.

        Returns:
            str: Path of the catalog file written.
        """
        node = DirectoryNode(path, Tier.ORIGINATOR)
        entries = classify_directory(node.path, self.options.sort_entries)
        catalog_path = os.path.join(node.path, self.options.catalog_name)

        with self._open_catalog(catalog_path) as f:
            root = self._new_catalog()
            seen: Dict[str, str] = {}
            for subdir in self._usable(node.path, entries.subdirectories, UNREPRESENTABLE_DIR):
                self.build_group(node.path, subdir, root, seen)
            self._write(f, root, catalog_path)

        return catalog_path

    # --- tier 3 and deeper ------------------------------------------------

    def build_group(
        self,
        originator: str,
        base: str,
        parent: etree._Element,
        seen: Optional[Dict[str, str]] = None,
    ) -> Group:
        """
        Appends the <group> for one content directory to ``parent`` and recurses
        into its subdirectories, nesting their groups inside this one.

        Args:
            originator (str): Directory holding the catalog being built.
            base (str): Directory path relative to ``originator``, "/"-separated.
            parent (etree._Element): Element the group is appended to.
            seen (Optional[Dict[str, str]]): Namespace -> first providing file, shared
                across one catalog to report duplicates.

        Returns:
            Group: The group as built, including nested groups.
        """
        if seen is None:
            seen = {}
        node = DirectoryNode(os.path.join(originator, *base.split("/")), Tier.CONTENT, base)
        entries = classify_directory(node.path, self.options.sort_entries)
        group = Group(base=node.base + "/")

        element = etree.SubElement(parent, _tag("group"))
        element.set(f"{{{XML_NS}}}base", group.base)

        for kind, names in ((FileKind.SCHEMA, entries.schemas), (FileKind.CLASSIFICATION, entries.classifications)):
            if not names:
                continue
            element.append(etree.Comment(SECTION_COMMENTS[kind]))
            for name in self._usable(node.path, names, UNREPRESENTABLE_FILE):
                entry = self._catalog_entry(node, name, kind, seen)
                if entry is None:
                    continue
                etree.SubElement(element, _tag("uri"), name=entry.name, uri=entry.uri)
                group.entries.append(entry)

        if entries.dtds:
            element.append(etree.Comment(SECTION_COMMENTS[FileKind.DTD]))
            for name in self._usable(node.path, entries.dtds, UNREPRESENTABLE_FILE):
                element.append(etree.Comment(DTD_FIXME_COMMENT))
                etree.SubElement(element, _tag("public"), publicId="", uri=name)
                etree.SubElement(element, _tag("system"), systemId="", uri=name)
                self.diagnostics.fixme(os.path.join(node.path, name), DTD_FIXME_MESSAGE)

        self.diagnostics.progress(node.base, entries.file_count)

        for subdir in self._usable(node.path, entries.subdirectories, UNREPRESENTABLE_DIR):
            group.groups.append(
                self.build_group(originator, posixpath.join(node.base, subdir), element, seen)
            )
        return group

    def _usable(self, directory: str, names, message: str) -> List[str]:
        """Drops names that cannot go into an attribute, warning once per name."""
        usable = []
        for name in names:
            if _representable(name):
                usable.append(name)
            else:
                self.diagnostics.warning(_display(os.path.join(directory, name)), message)
        return usable

    def _catalog_entry(
        self, node: DirectoryNode, name: str, kind: FileKind, seen: Dict[str, str]
    ) -> Optional[CatalogEntry]:
        path = os.path.join(node.path, name)
        result: ExtractionResult = self.extractor.extract(path, kind)
        if not result.ok:
            message = WARNINGS[(kind, result.outcome)]
            if result.detail and result.outcome is Outcome.UNRECOGNIZED:
                logger.debug("%s: %s", path, result.detail)
            self.diagnostics.warning(path, message)
            return None

        namespace = result.namespace
        if namespace in seen and self.options.warn_duplicates:
            self.diagnostics.warning(
                path,
                f'namespace "{namespace}" is also provided by "{seen[namespace]}"; both entries kept',
            )
        seen.setdefault(namespace, path)
        return CatalogEntry(name=namespace, uri=name)

    # --- output -----------------------------------------------------------

    def _open_catalog(self, path: str):
        # Opened before the body is built so an unwritable catalog fails early.
        self.diagnostics.catalog(path)
        try:
            return open(path, "wb")
        except OSError as e:
            raise CatalogBuildError(f"cannot open > {path}: {e.strerror or e}", path, e) from e

    @staticmethod
    def _new_catalog() -> etree._Element:
        return etree.Element(_tag("catalog"), nsmap={None: CATALOG_NS})

    @staticmethod
    def _write(f, root: etree._Element, path: str) -> None:
        body = etree.tostring(root, pretty_print=True, xml_declaration=False, encoding="UTF-8")
        try:
            f.write(XML_DECLARATION)
            f.write(DOCTYPE)
            f.write(body)
        except OSError as e:
            raise CatalogBuildError(f"cannot write {path}: {e.strerror or e}", path, e) from e


def build_catalogs(
    paths: List[str],
    diagnostics: Optional[Diagnostics] = None,
    options: Optional[BuildOptions] = None,
) -> List[str]:
    """
    Regenerates the catalogs under each library root in turn.

    Returns:
        List[str]: Every catalog file written, in write order.
    """
    builder = CatalogBuilder(diagnostics=diagnostics, options=options)
    written: List[str] = []
    for path in paths:
        written.extend(builder.build_root(path))
    return written
