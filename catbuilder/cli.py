import argparse
import sys

from catbuilder.diagnostics import ConsoleDiagnostics, Diagnostics
from catbuilder.models import CatalogBuildError
from catbuilder.writer import CatalogBuilder


def handle_build(args, diagnostics: Diagnostics) -> int:
    """Regenerates the catalogs under every given library root, in order."""
    builder = CatalogBuilder(diagnostics=diagnostics)
    diagnostics.start()
    try:
        for path in args.paths or ["."]:
            builder.build_root(path)
    except CatalogBuildError as e:
        diagnostics.fatal(str(e))
        return 1
    diagnostics.finish()
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="catbuilder",
        description=(
            "Generate XML Catalog files for the W3C XML Schemas, Classification Schemes "
            "and DTDs in a three-tier metadata library (library/originator/version)."
        ),
    )
    parser.add_argument(
        "paths",
        nargs="*",
        metavar="PATH",
        help="Library root to process (default: current directory).",
    )

    args = parser.parse_args(argv)
    sys.exit(handle_build(args, ConsoleDiagnostics()))


if __name__ == "__main__":
    main()
