import logging
from typing import Callable, Dict, List, Optional

from lxml import etree

from catbuilder.models import ExtractionResult, FileKind

logger = logging.getLogger(__name__)

Rule = Callable[[etree._Element], Optional[ExtractionResult]]


def _namespace_from(value: Optional[str]) -> ExtractionResult:
    """Turns a raw attribute value into an outcome. Blank values count as absent."""
    if value is None:
        return ExtractionResult.no_namespace()
    value = value.strip()
    if not value:
        return ExtractionResult.no_namespace()
    return ExtractionResult.extracted(value)


def _first(root: etree._Element, local_name: str) -> Optional[etree._Element]:
    # root.iter() includes the root itself
    return next(root.iter("{*}" + local_name), None)


def _schema_target_namespace(root: etree._Element) -> Optional[ExtractionResult]:
    schema = _first(root, "schema")
    if schema is None:
        return None
    return _namespace_from(schema.get("targetNamespace"))


def _classification_scheme_uri(root: etree._Element) -> Optional[ExtractionResult]:
    scheme = _first(root, "ClassificationScheme")
    if scheme is None:
        return None
    return _namespace_from(scheme.get("uri"))


def _root_target_namespace(root: etree._Element) -> Optional[ExtractionResult]:
    return _namespace_from(root.get("targetNamespace"))


class NamespaceExtractor:
    """
    Reads the logical namespace of a W3C XML Schema or a Classification Scheme.

    Each file kind has an ordered list of rules. A rule looks at the parsed tree and
    either returns a conclusive ExtractionResult or None to pass to the next rule.
    When no rule is conclusive the kind's fallback outcome applies.

    Parsing is done in lxml's recover mode, so malformed markup degrades to a
    best-effort tree (or to UNRECOGNIZED) and never raises.
    """

    RULES: Dict[FileKind, List[Rule]] = {
        FileKind.SCHEMA: [_schema_target_namespace],
        FileKind.CLASSIFICATION: [_classification_scheme_uri, _root_target_namespace],
    }

    FALLBACKS: Dict[FileKind, Callable[[], ExtractionResult]] = {
        FileKind.SCHEMA: lambda: ExtractionResult.unrecognized("no <schema> element"),
        FileKind.CLASSIFICATION: ExtractionResult.no_namespace,
    }

    def __init__(self):
        self._parser = etree.XMLParser(
            recover=True,
            resolve_entities=False,
            no_network=True,
            remove_blank_text=True,
        )

    def _load(self, path: str):
        """Returns (root, None) on success, or (None, reason) when no tree could be built."""
        try:
            with open(path, "rb") as f:
                tree = etree.parse(f, self._parser)
        except OSError as e:
            return None, f"cannot read file: {e.strerror or e}"
        except etree.XMLSyntaxError as e:
            return None, f"not parseable as XML: {e}"

        root = tree.getroot()
        if root is None:
            return None, "document is empty"
        return root, None

    def _resolve(self, root: etree._Element, kind: FileKind) -> ExtractionResult:
        """Returns the first conclusive rule outcome, or the kind's fallback."""
        for rule in self.RULES[kind]:
            result = rule(root)
            if result is not None:
                return result
        return self.FALLBACKS[kind]()

    def extract(self, path: str, kind: FileKind) -> ExtractionResult:
        """
        Extracts the namespace of one file.

        Args:
            path (str): File to read.
            kind (FileKind): SCHEMA or CLASSIFICATION. DTDs carry no extractable identifier.

        Returns:
            ExtractionResult: EXTRACTED with the trimmed namespace, NO_NAMESPACE, or UNRECOGNIZED.
        """
        if kind not in self.RULES:
            raise ValueError(f"namespace extraction is not defined for {kind.value} files")

        root, reason = self._load(path)
        if root is None:
            logger.debug("%s: %s", path, reason)
            return ExtractionResult.unrecognized(reason)

        result = self._resolve(root, kind)
        logger.debug("%s: %s", path, result.outcome.value)
        return result

    def extract_bytes(self, data: bytes, kind: FileKind) -> ExtractionResult:
        """Same as extract(), for in-memory documents."""
        if kind not in self.RULES:
            raise ValueError(f"namespace extraction is not defined for {kind.value} files")
        try:
            root = etree.fromstring(data, self._parser)
        except etree.XMLSyntaxError as e:
            return ExtractionResult.unrecognized(f"not parseable as XML: {e}")
        if root is None:
            return ExtractionResult.unrecognized("document is empty")

        return self._resolve(root, kind)
