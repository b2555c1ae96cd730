"""
graphslick: basic-block grouping for control-flow graphs
=========================================================

Groups the basic blocks of a function into named node groups, reconciles
those groups with the function's live flowchart, and shows the result as
either the plain flowchart or a condensed graph with one node per group.

Core modules
------------
groupman
    The group model (SuperGroup / NodeGroup / NodeDef) and its indices.
bbgroup
    Reader and writer for ``.bbgroup`` definition files.
sanitizer
    Repairs a group model against the live flowchart.
synthesizer
    Builds the flat and combined renderable graphs.
combiner
    Merges node groups.
colorgen
    Deterministic highlight colors.
graphview, panel, session
    Interactive state, group chooser, and the load/save session.

Quick start
-----------
>>> from graphslick import GroupManager, FlowChart, sanitize
>>> fc = FlowChart.from_ranges([(0x10, 0x20), (0x20, 0x30)], {0: [1]})
>>> gm = GroupManager.parse("g;Entry;;(0:0x10:0x20)")
>>> report = sanitize(gm, fc)
>>> report.summary()
'0 split, 0 dropped, 1 synthesized'
"""

from __future__ import annotations

import logging
from typing import List

__version__: str = "0.1.0"

_log = logging.getLogger(__name__)
_log.addHandler(logging.NullHandler())

from graphslick.colorgen import ColorAssigner, Color  # noqa: E402
from graphslick.combiner import GroupCombiner  # noqa: E402
from graphslick.errors import (  # noqa: E402
    EmptyCfgError,
    ErrorCode,
    GraphSlickError,
    InsufficientSelectionError,
    NotFoundError,
    ParseError,
    PreconditionError,
)
from graphslick.flowchart import BasicBlock, FlowChart, JsonCfgProvider  # noqa: E402
from graphslick.groupman import (  # noqa: E402
    GroupManager,
    NodeDef,
    NodeGroup,
    NodeLocation,
    SuperGroup,
)
from graphslick.options import GraphSlickOptions, ViewMode  # noqa: E402
from graphslick.sanitizer import SanitizeReport, Sanitizer, sanitize  # noqa: E402
from graphslick.synthesizer import GraphSynthesizer, RenderableGraph  # noqa: E402

__all__: List[str] = [
    "__version__",
    "BasicBlock",
    "Color",
    "ColorAssigner",
    "EmptyCfgError",
    "ErrorCode",
    "FlowChart",
    "GraphSlickError",
    "GraphSlickOptions",
    "GraphSynthesizer",
    "GroupCombiner",
    "GroupManager",
    "InsufficientSelectionError",
    "JsonCfgProvider",
    "NodeDef",
    "NodeGroup",
    "NodeLocation",
    "NotFoundError",
    "ParseError",
    "PreconditionError",
    "RenderableGraph",
    "SanitizeReport",
    "Sanitizer",
    "SuperGroup",
    "ViewMode",
    "sanitize",
]
