"""
Diagnostic sinks for catalog builds.

A build reports three severities: warnings (a file could not be cataloged and was
skipped), fix-me notices (a DTD got placeholder entries that need manual IDs) and
fatal errors (I/O failures that stop the run). Progress and catalog-written notices
are informational. None of them affect the exit status except fatal errors, which
the caller turns into a non-zero exit.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from rich.console import Console
from rich.text import Text


class Diagnostics:
    """
    Base sink. Counts warnings and fix-mes; subclasses decide how to render them.
    """

    def __init__(self):
        self.warnings = 0
        self.fixmes = 0

    def start(self) -> None:
        self._render_start()

    def catalog(self, path: str) -> None:
        self._render_catalog(path)

    def warning(self, path: str, message: str) -> None:
        self.warnings += 1
        self._render_warning(path, message)

    def fixme(self, path: str, message: str) -> None:
        self.fixmes += 1
        self._render_fixme(path, message)

    def progress(self, group: str, count: int) -> None:
        self._render_progress(group, count)

    def fatal(self, message: str) -> None:
        self._render_fatal(message)

    def finish(self) -> None:
        self._render_finish()

    def _render_start(self) -> None:
        pass

    def _render_catalog(self, path: str) -> None:
        pass

    def _render_warning(self, path: str, message: str) -> None:
        pass

    def _render_fixme(self, path: str, message: str) -> None:
        pass

    def _render_progress(self, group: str, count: int) -> None:
        pass

    def _render_fatal(self, message: str) -> None:
        pass

    def _render_finish(self) -> None:
        pass


class ConsoleDiagnostics(Diagnostics):
    """Colored terminal rendering via rich. Fatal errors go to stderr."""

    def __init__(self, console: Optional[Console] = None, error_console: Optional[Console] = None):
        super().__init__()
        self.console = console or Console(soft_wrap=True, highlight=False)
        self.error_console = error_console or Console(stderr=True, soft_wrap=True, highlight=False)

    def _render_start(self) -> None:
        self.console.print("Generating XML Catalog files:")

    def _render_catalog(self, path: str) -> None:
        self.console.print(Text(f"   {path}", style="bold blue"))

    def _render_warning(self, path: str, message: str) -> None:
        self.console.print(Text.assemble((f'"{path}" Warning: ', "bold red"), (message, "red")))

    def _render_fixme(self, path: str, message: str) -> None:
        self.console.print(Text.assemble((f'"{path}" FIXME: ', "bold magenta"), (message, "magenta")))

    def _render_progress(self, group: str, count: int) -> None:
        self.console.print(Text(f'      [group "{group}" with {count} entries]'))

    def _render_fatal(self, message: str) -> None:
        self.error_console.print(Text.assemble(("Error: ", "bold red"), message))

    def _render_finish(self) -> None:
        self.console.print(f"Done: {self.warnings} warning(s), {self.fixmes} FIXME(s)")


class LoggingDiagnostics(Diagnostics):
    """Routes diagnostics to a standard logger, e.g. for a log file."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        super().__init__()
        self.logger = logger or logging.getLogger("catbuilder")

    def _render_catalog(self, path: str) -> None:
        self.logger.info("writing %s", path)

    def _render_warning(self, path: str, message: str) -> None:
        self.logger.warning("%s: %s", path, message)

    def _render_fixme(self, path: str, message: str) -> None:
        self.logger.warning("%s: FIXME: %s", path, message)

    def _render_progress(self, group: str, count: int) -> None:
        self.logger.info("group %s with %d entries", group, count)

    def _render_fatal(self, message: str) -> None:
        self.logger.error(message)

    def _render_finish(self) -> None:
        self.logger.info("done: %d warning(s), %d FIXME(s)", self.warnings, self.fixmes)


@dataclass(frozen=True)
class Record:
    severity: str
    path: Optional[str]
    message: str


class CollectingDiagnostics(Diagnostics):
    """Keeps every diagnostic in memory for structured reporting."""

    def __init__(self):
        super().__init__()
        self.records: List[Record] = []

    def _render_catalog(self, path: str) -> None:
        self.records.append(Record("catalog", path, ""))

    def _render_warning(self, path: str, message: str) -> None:
        self.records.append(Record("warning", path, message))

    def _render_fixme(self, path: str, message: str) -> None:
        self.records.append(Record("fixme", path, message))

    def _render_progress(self, group: str, count: int) -> None:
        self.records.append(Record("progress", group, str(count)))

    def _render_fatal(self, message: str) -> None:
        self.records.append(Record("fatal", None, message))

    def of(self, severity: str) -> List[Record]:
        return [r for r in self.records if r.severity == severity]
