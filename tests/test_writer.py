import os
import sys

import pytest
from lxml import etree

from catbuilder.diagnostics import CollectingDiagnostics
from catbuilder.models import BuildOptions, CatalogBuildError
from catbuilder.writer import CATALOG_NS, XML_NS, CatalogBuilder

C = "{%s}" % CATALOG_NS
BASE = "{%s}base" % XML_NS


def schema(namespace=None):
    attr = f' targetNamespace="{namespace}"' if namespace is not None else ""
    return f'<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema"{attr}/>'.encode()


def classification(uri):
    return f'<ClassificationScheme xmlns="urn:tva:metadata:cs:2005" uri="{uri}"/>'.encode()


def put(path, data=b""):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


def load(path):
    return etree.parse(str(path)).getroot()


def uris(element):
    return [(u.get("name"), u.get("uri")) for u in element.findall(C + "uri")]


@pytest.fixture
def library(tmp_path):
    lib = tmp_path / "lib"
    put(lib / "stray.xsd", schema("urn:root:stray"))
    put(lib / "W3C" / "stray.xsd", schema("urn:w3c:stray"))
    put(lib / "W3C" / "2015" / "foo.xsd", schema("urn:w3c:2015"))
    put(lib / "W3C" / "2015" / "barCS.xml", classification("urn:w3c:2015:barCS"))
    put(lib / "W3C" / "2015" / "profiles" / "bar.xsd", schema("urn:w3c:2015:profiles"))
    put(lib / "MPEG-7" / "Content" / "oogle.xsd", schema("urn:mpeg7:oogle"))
    put(lib / "MPEG-7" / "Content" / "legacy.dtd", b"<!ELEMENT legacy (#PCDATA)>")
    return lib


@pytest.fixture
def diagnostics():
    return CollectingDiagnostics()


@pytest.fixture
def builder(diagnostics):
    return CatalogBuilder(diagnostics=diagnostics)


def test_root_catalog_forwards_to_originators(library, builder):
    written = builder.build_root(str(library))

    root = load(library / "catalog.xml")
    assert root.tag == C + "catalog"
    assert [n.get("catalog") for n in root.findall(C + "nextCatalog")] == [
        "MPEG-7/catalog.xml",
        "W3C/catalog.xml",
    ]
    assert root.find(".//" + C + "group") is None
    assert root.find(".//" + C + "uri") is None
    assert written == [
        str(library / "catalog.xml"),
        str(library / "MPEG-7" / "catalog.xml"),
        str(library / "W3C" / "catalog.xml"),
    ]


def test_catalog_preamble(library, builder):
    builder.build_root(str(library))
    data = (library / "W3C" / "catalog.xml").read_bytes()
    assert data.startswith(b'<?xml version="1.0" encoding="UTF-8"?>\n<!DOCTYPE catalog PUBLIC')
    assert b"-//OASIS//DTD XML Catalogs V1.1//EN" in data
    assert b'<catalog xmlns="urn:oasis:names:tc:entity:xmlns:xml:catalog">' in data


def test_nested_groups(library, builder):
    builder.build_root(str(library))

    root = load(library / "W3C" / "catalog.xml")
    groups = root.findall(C + "group")
    assert [g.get(BASE) for g in groups] == ["2015/"]

    top = groups[0]
    assert uris(top) == [("urn:w3c:2015", "foo.xsd"), ("urn:w3c:2015:barCS", "barCS.xml")]

    nested = top.findall(C + "group")
    assert [g.get(BASE) for g in nested] == ["2015/profiles/"]
    assert uris(nested[0]) == [("urn:w3c:2015:profiles", "bar.xsd")]


def test_files_outside_content_tiers_are_not_indexed(library, builder):
    builder.build_root(str(library))
    names = set()
    for catalog in [library / "catalog.xml", library / "W3C" / "catalog.xml", library / "MPEG-7" / "catalog.xml"]:
        names.update(u.get("name") for u in load(catalog).iter(C + "uri"))
    assert "urn:root:stray" not in names
    assert "urn:w3c:stray" not in names
    assert not (library / "W3C" / "2015" / "catalog.xml").exists()


def test_namespace_fidelity(library, builder):
    builder.build_root(str(library))
    data = (library / "W3C" / "catalog.xml").read_bytes()
    assert b'<uri name="urn:w3c:2015" uri="foo.xsd"/>' in data


def test_section_comments(library, builder):
    builder.build_root(str(library))
    group = load(library / "W3C" / "catalog.xml").find(C + "group")
    comments = [c.text for c in group if isinstance(c, etree._Comment)]
    assert comments == [" W3C XML Schemas ", " Classification Schemes "]


def test_dtd_placeholders(library, builder, diagnostics):
    builder.build_root(str(library))

    group = load(library / "MPEG-7" / "catalog.xml").find(C + "group")
    publics = group.findall(C + "public")
    systems = group.findall(C + "system")
    assert [(p.get("publicId"), p.get("uri")) for p in publics] == [("", "legacy.dtd")]
    assert [(s.get("systemId"), s.get("uri")) for s in systems] == [("", "legacy.dtd")]
    assert any("FIXME" in (c.text or "") for c in group if isinstance(c, etree._Comment))

    fixmes = diagnostics.of("fixme")
    assert len(fixmes) == 1
    assert fixmes[0].path.endswith("legacy.dtd")
    assert diagnostics.fixmes == 1


def test_missing_namespace_is_skipped_with_warning(tmp_path, builder, diagnostics):
    originator = tmp_path / "W3C"
    put(originator / "2008" / "good.xsd", schema("urn:good"))
    put(originator / "2008" / "nons.xsd", schema())
    put(originator / "2008" / "notaschema.xsd", b"<html><body/></html>")
    put(originator / "2008" / "plain.xml", b"<Mapping/>")

    builder.build_originator(str(originator))

    group = load(originator / "catalog.xml").find(C + "group")
    assert uris(group) == [("urn:good", "good.xsd")]

    messages = {os.path.basename(r.path): r.message for r in diagnostics.of("warning")}
    assert "no target namespace" in messages["nons.xsd"]
    assert "no W3C XML <schema> element" in messages["notaschema.xsd"]
    assert "Classification Scheme with no namespace" in messages["plain.xml"]
    assert diagnostics.warnings == 3


def test_empty_directory_still_gets_a_group(tmp_path, builder, diagnostics):
    originator = tmp_path / "W3C"
    (originator / "empty").mkdir(parents=True)

    builder.build_originator(str(originator))

    groups = load(originator / "catalog.xml").findall(C + "group")
    assert [g.get(BASE) for g in groups] == ["empty/"]
    assert len(groups[0]) == 0
    assert [(r.path, r.message) for r in diagnostics.of("progress")] == [("empty", "0")]


def test_progress_counts(library, builder, diagnostics):
    builder.build_root(str(library))
    progress = {r.path: r.message for r in diagnostics.of("progress")}
    assert progress == {"Content": "2", "2015": "2", "2015/profiles": "1"}


def test_hidden_entries_produce_nothing(tmp_path, builder, diagnostics):
    lib = tmp_path / "lib"
    put(lib / ".svn" / "entries.xsd", schema())
    put(lib / "W3C" / ".cache" / "x.xsd", schema())
    put(lib / "W3C" / "2015" / ".broken.xsd", b"junk")
    put(lib / "W3C" / "2015" / ".hidden" / "deep.xsd", schema("urn:hidden"))
    put(lib / "W3C" / "2015" / "ok.xsd", schema("urn:ok"))

    builder.build_root(str(lib))

    assert [n.get("catalog") for n in load(lib / "catalog.xml").findall(C + "nextCatalog")] == ["W3C/catalog.xml"]
    w3c = load(lib / "W3C" / "catalog.xml")
    assert [g.get(BASE) for g in w3c.iter(C + "group")] == ["2015/"]
    assert [u.get("name") for u in w3c.iter(C + "uri")] == ["urn:ok"]
    assert diagnostics.of("warning") == []
    assert not (lib / ".svn" / "catalog.xml").exists()


def test_rerun_is_idempotent(library, builder):
    builder.build_root(str(library))
    first = {p: (library / p).read_bytes() for p in ["catalog.xml", "W3C/catalog.xml", "MPEG-7/catalog.xml"]}

    CatalogBuilder(diagnostics=CollectingDiagnostics()).build_root(str(library))
    second = {p: (library / p).read_bytes() for p in first}

    assert first == second


def test_existing_catalog_is_overwritten(library, builder):
    (library / "W3C" / "catalog.xml").write_bytes(b"<stale>" * 1000)
    builder.build_root(str(library))
    data = (library / "W3C" / "catalog.xml").read_bytes()
    assert b"<stale>" not in data
    load(library / "W3C" / "catalog.xml")


def test_special_characters_are_escaped(tmp_path, builder):
    originator = tmp_path / "Odd"
    put(originator / "v1" / "amp.xsd", b'<schema targetNamespace="urn:a&amp;b&quot;c"/>')

    builder.build_originator(str(originator))

    group = load(originator / "catalog.xml").find(C + "group")
    assert uris(group) == [('urn:a&b"c', "amp.xsd")]


def test_duplicate_namespaces_are_kept_and_flagged(tmp_path, builder, diagnostics):
    originator = tmp_path / "W3C"
    put(originator / "2008" / "foo.xsd", schema("urn:same"))
    put(originator / "2015" / "foo.xsd", schema("urn:same"))

    builder.build_originator(str(originator))

    root = load(originator / "catalog.xml")
    assert [u.get("name") for u in root.iter(C + "uri")] == ["urn:same", "urn:same"]
    warnings = diagnostics.of("warning")
    assert len(warnings) == 1
    assert "also provided by" in warnings[0].message
    assert "2008" in warnings[0].message


def test_duplicate_warning_can_be_disabled(tmp_path, diagnostics):
    originator = tmp_path / "W3C"
    put(originator / "2008" / "foo.xsd", schema("urn:same"))
    put(originator / "2015" / "foo.xsd", schema("urn:same"))

    builder = CatalogBuilder(diagnostics=diagnostics, options=BuildOptions(warn_duplicates=False))
    builder.build_originator(str(originator))

    assert diagnostics.of("warning") == []


def test_custom_catalog_name(library, diagnostics):
    builder = CatalogBuilder(diagnostics=diagnostics, options=BuildOptions(catalog_name="xcatalog.xml"))
    builder.build_root(str(library))
    assert [n.get("catalog") for n in load(library / "xcatalog.xml").findall(C + "nextCatalog")] == [
        "MPEG-7/xcatalog.xml",
        "W3C/xcatalog.xml",
    ]
    assert (library / "W3C" / "xcatalog.xml").exists()


def test_build_group_returns_structure(library, builder):
    parent = etree.Element(C + "catalog", nsmap={None: CATALOG_NS})
    group = builder.build_group(str(library / "W3C"), "2015", parent)

    assert group.base == "2015/"
    assert [(e.name, e.uri) for e in group.entries] == [
        ("urn:w3c:2015", "foo.xsd"),
        ("urn:w3c:2015:barCS", "barCS.xml"),
    ]
    assert [g.base for g in group.groups] == ["2015/profiles/"]
    assert len(parent.findall(C + "group")) == 1


def test_working_directory_is_untouched(library, builder):
    before = os.getcwd()
    builder.build_root(str(library))
    assert os.getcwd() == before


def test_missing_root_is_fatal(tmp_path, builder):
    with pytest.raises(CatalogBuildError):
        builder.build_root(str(tmp_path / "missing"))


def test_unwritable_catalog_is_fatal(tmp_path, builder):
    originator = tmp_path / "W3C"
    # A directory where the catalog file should go cannot be opened for writing.
    (originator / "catalog.xml").mkdir(parents=True)
    put(originator / "2015" / "foo.xsd", schema("urn:w3c:2015"))

    with pytest.raises(CatalogBuildError) as excinfo:
        builder.build_originator(str(originator))
    assert excinfo.value.path == str(originator / "catalog.xml")


@pytest.mark.skipif(sys.platform != "linux", reason="needs arbitrary bytes in file names")
def test_unrepresentable_names_are_skipped_with_warning(tmp_path, builder, diagnostics):
    lib = tmp_path / "lib"
    version = lib / "W3C" / "2015"
    put(version / "ok.xsd", schema("urn:ok"))
    # b"caf\xe9.xsd" is not valid UTF-8 and decodes with a surrogate escape
    put(version / "caf\udce9.xsd", schema("urn:latin1"))
    put(version / "a\x01b.dtd", b"<!ELEMENT a EMPTY>")
    put(version / "bad\x02dir" / "deep.xsd", schema("urn:deep"))
    put(lib / "odd\x03originator" / "v1" / "x.xsd", schema("urn:x"))

    builder.build_root(str(lib))

    assert [n.get("catalog") for n in load(lib / "catalog.xml").findall(C + "nextCatalog")] == ["W3C/catalog.xml"]
    w3c = load(lib / "W3C" / "catalog.xml")
    assert [g.get(BASE) for g in w3c.iter(C + "group")] == ["2015/"]
    assert [u.get("name") for u in w3c.iter(C + "uri")] == ["urn:ok"]
    assert w3c.find(".//" + C + "public") is None

    messages = [r.message for r in diagnostics.of("warning")]
    assert len(messages) == 4
    assert messages.count(
        "file name cannot be represented in an XML catalog; no catalog entry generated"
    ) == 2
    assert all("\udce9" not in r.path for r in diagnostics.of("warning"))
    assert diagnostics.of("fixme") == []
