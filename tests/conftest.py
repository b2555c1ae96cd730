# tests/conftest.py
"""
Shared fixtures and builders for the GraphSlick test-suite.

The running example is a four-block diamond::

        A (0x10)
       /        \\
    B (0x20)   C (0x30)
       \\        /
        D (0x40)

grouped as ``sg1 = {A, B}`` and ``sg2 = {C, D}``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from graphslick.flowchart import FlowChart
from graphslick.groupman import GroupManager
from graphslick.sanitizer import Sanitizer

A, B, C, D, E = (0x10, 0x20), (0x20, 0x30), (0x30, 0x40), (0x40, 0x50), (0x50, 0x60)

DIAMOND_RANGES: List[Tuple[int, int]] = [A, B, C, D]
DIAMOND_SUCCS: Dict[int, List[int]] = {0: [1, 2], 1: [3], 2: [3]}

DIAMOND_DEFS = """\
# two groups over the diamond
sg1;Head;entry and left arm;(0:0x10:0x20, 1:0x20:0x30)
sg2;Tail;;(2:0x30:0x40, 3:0x40:0x50)
"""

# One NodeGroup per block, the middle two in the same SuperGroup.
SPLIT_DEFS = """\
sg1;Head;;(0:0x10:0x20)
sg2;Left;;(1:0x20:0x30), (2:0x30:0x40)
sg3;Tail;;(3:0x40:0x50)
"""

DIAMOND_CFG = {
    "functions": [
        {
            "name": "diamond",
            "start": "0x10",
            "blocks": [
                {"start": "0x10", "end": "0x20", "succs": [1, 2], "label": "entry"},
                {"start": "0x20", "end": "0x30", "succs": [3]},
                {"start": "0x30", "end": "0x40", "succs": [3]},
                {"start": "0x40", "end": "0x50"},
            ],
        },
        {
            "name": "other",
            "start": 4096,
            "blocks": [{"start": "0x1000", "end": "0x1010"}],
        },
        {
            "name": "empty",
            "start": "0x2000",
            "blocks": [],
        },
    ]
}


def make_flowchart(
    ranges: Sequence[Tuple[int, int]] = DIAMOND_RANGES,
    succs: Optional[Dict[int, List[int]]] = None,
    title: str = "diamond",
) -> FlowChart:
    if succs is None:
        succs = DIAMOND_SUCCS if list(ranges[:4]) == DIAMOND_RANGES else {}
    return FlowChart.from_ranges(ranges, succs, title=title)


def make_manager(
    text: str = DIAMOND_DEFS,
    flowchart: Optional[FlowChart] = None,
    lookups: bool = True,
) -> GroupManager:
    """Parse, sanitize against *flowchart* and (optionally) index."""
    gm = GroupManager.parse(text, source_name="test.bbgroup")
    Sanitizer().run(gm, flowchart or make_flowchart())
    if lookups:
        gm.initialize_lookups()
    return gm


def write_inputs(tmp_path: Path, defs: str = DIAMOND_DEFS) -> Tuple[Path, Path]:
    defs_file = tmp_path / "f1.bbgroup"
    defs_file.write_text(defs, encoding="utf-8")
    cfg_file = tmp_path / "cfg.json"
    cfg_file.write_text(json.dumps(DIAMOND_CFG), encoding="utf-8")
    return defs_file, cfg_file


@pytest.fixture
def diamond() -> FlowChart:
    return make_flowchart()


@pytest.fixture
def gm(diamond) -> GroupManager:
    return make_manager(flowchart=diamond)
