"""
graphslick.session
==================

Ties the pieces together for one loaded definition file:

    parse -> resolve function -> fetch flowchart -> sanitize ->
    initialize lookups -> populate chooser -> open graph view

Everything is computed before the session's state is replaced, so a load
that fails (bad file, unknown function, empty flowchart) leaves the
previously loaded file fully usable.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union

from graphslick.errors import NotFoundError, PreconditionError
from graphslick.flowchart import CfgProvider, FlowChart
from graphslick.graphview import GraphView, GraphViewEvents
from graphslick.groupman import GroupManager
from graphslick.options import GraphSlickOptions
from graphslick.panel import ChooserLine, populate_lines
from graphslick.sanitizer import SanitizeReport, Sanitizer

_log = logging.getLogger(__name__)


class GraphSlickSession:
    """One definition file shown over one function's flowchart."""

    def __init__(
        self,
        provider: CfgProvider,
        options: Optional[GraphSlickOptions] = None,
        events: Optional[GraphViewEvents] = None,
    ) -> None:
        self.provider = provider
        self.options = options or GraphSlickOptions()
        self.events = events
        self.input_file: Optional[Path] = None
        self.gm: Optional[GroupManager] = None
        self.flowchart: Optional[FlowChart] = None
        self.view: Optional[GraphView] = None
        self.lines: List[ChooserLine] = []
        self.last_report: Optional[SanitizeReport] = None
        if self.options.debug:
            logging.getLogger("graphslick").setLevel(logging.DEBUG)

    def __enter__(self) -> GraphSlickSession:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def loaded(self) -> bool:
        return self.gm is not None

    def load_file(self, path: Union[str, Path]) -> SanitizeReport:
        """Load *path* and show it; returns the sanitizer report."""
        path = Path(path)
        gm = GroupManager.parse_file(path)
        first = gm.first_node_def()
        if first is None:
            raise NotFoundError(
                f"{path} defines no nodes", hint="cannot tell which function it describes"
            )
        flowchart = self.provider.get_cfg(first.start)
        report = Sanitizer().run(gm, flowchart)
        gm.initialize_lookups()

        view = GraphView(gm, flowchart, self.options, self.events or GraphViewEvents())
        try:
            view.switch_mode(self.options.start_view_mode)
        except Exception:
            view.close()
            raise

        self.close()
        self.input_file = path
        self.gm = gm
        self.flowchart = flowchart
        self.view = view
        self.lines = populate_lines(gm)
        self.last_report = report
        _log.info(
            "Loaded %s over %s: %d supergroup(s), %s",
            path, flowchart.title or "<function>", len(gm), report.summary(),
        )
        return report

    def reload_input_file(self) -> SanitizeReport:
        if self.input_file is None:
            raise PreconditionError("no input file loaded")
        return self.load_file(self.input_file)

    def refresh_lines(self) -> List[ChooserLine]:
        """Rebuild the chooser after the model changed (combine, rename)."""
        if self.gm is None:
            raise PreconditionError("no input file loaded")
        self.lines = populate_lines(self.gm)
        return self.lines

    def save(self, path: Union[str, Path, None] = None) -> Path:
        if self.gm is None:
            raise PreconditionError("nothing to save")
        target = self.gm.save(path if path is not None else self.input_file)
        _log.info("Saved groups to %s", target)
        return target

    def close(self) -> None:
        if self.view is not None:
            self.view.close()
        self.view = None
        self.gm = None
        self.flowchart = None
        self.lines = []
        self.last_report = None
