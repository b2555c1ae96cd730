"""
graphslick.panel
================

The group chooser: a flat, three-level listing of a group model::

    f1.bbgroup
        Init loop (sg1) C(2)                         0x401000
            C(2):(0:0x401000:0x401010, 1:0x401010:0x401020)   0x401000
            C(1):(4:0x401040:0x401050)                         0x401040
        ...

Each line keeps a reference to the SuperGroup / NodeGroup it shows, so a
host can jump to the group when a line is activated.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from graphslick.groupman import GroupManager, NodeGroup, SuperGroup

LEVEL_FILE = 0
LEVEL_SUPERGROUP = 1
LEVEL_GROUP = 2


@dataclass
class ChooserLine:
    level: int
    text: str
    address: str = ""
    sg: Optional[SuperGroup] = None
    ng: Optional[NodeGroup] = None


def _group_text(ng: NodeGroup) -> str:
    return f"C({len(ng)}):(" + ", ".join(str(nd) for nd in ng) + ")"


def populate_lines(gm: GroupManager) -> List[ChooserLine]:
    """Chooser lines for *gm*, in model order."""
    name = Path(gm.source_file).name if gm.source_file else "<groups>"
    lines = [ChooserLine(LEVEL_FILE, name)]
    for sg in gm.supergroups:
        first = sg.first_group()
        addr = f"{first.nodes[0].start:#x}" if first is not None and first.nodes else ""
        lines.append(
            ChooserLine(
                LEVEL_SUPERGROUP,
                f"{sg.get_display_name()} ({sg.id}) C({sg.gcount()})",
                addr,
                sg=sg,
            )
        )
        for ng in sg.groups:
            lines.append(
                ChooserLine(
                    LEVEL_GROUP,
                    _group_text(ng),
                    f"{ng.nodes[0].start:#x}" if ng.nodes else "",
                    sg=sg,
                    ng=ng,
                )
            )
    return lines


def format_lines(lines: List[ChooserLine], indent: int = 4) -> str:
    """Plain-text rendering of chooser lines (two columns)."""
    rows = [(" " * (indent * ln.level) + ln.text, ln.address) for ln in lines]
    width = max((len(text) for text, _ in rows), default=0)
    return "\n".join(
        f"{text:<{width}}  {addr}".rstrip() for text, addr in rows
    )
