"""
graphslick.synthesizer
======================

Turns a flowchart plus a sanitized group model into a renderable directed
graph, in one of two projections:

``ViewMode.FLAT``
    One node per basic block; node id = NodeDef ``nid``; edges mirror the
    flowchart's successor lists.
``ViewMode.COMBINED``
    One node per NodeGroup; node id = the manager's synthetic group id,
    handed out in discovery order (flowchart block order) the first time a
    group is met and stable afterwards.  A flowchart edge ``u -> v`` is
    projected to ``group(u) -> group(v)``; self edges are dropped and
    parallel edges collapsed, keeping first-seen order.

The result is a plain snapshot (:class:`RenderableGraph`); the rendering
widget, highlighting and selection live in :mod:`graphslick.graphview`.

Typical usage::

    synth = GraphSynthesizer(options)
    graph = synth.build(ViewMode.COMBINED, flowchart, gm)
    print(graph.to_dot())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from graphslick.colorgen import Color
from graphslick.errors import EmptyCfgError, NotFoundError, PreconditionError
from graphslick.flowchart import BasicBlock, FlowChart
from graphslick.groupman import GroupManager, NodeDef, NodeGroup, SuperGroup
from graphslick.options import GraphSlickOptions, ViewMode

_log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Renderable graph
# ---------------------------------------------------------------------------

@dataclass
class RenderNode:
    id: int
    text: str
    hint: str = ""
    color: Optional[Color] = None


@dataclass(frozen=True)
class RenderEdge:
    src: int
    dst: int


@dataclass
class RenderableGraph:
    """Nodes and edges handed to the presentation layer."""

    mode: ViewMode
    nodes: List[RenderNode] = field(default_factory=list)
    edges: List[RenderEdge] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._index: Dict[int, RenderNode] = {n.id: n for n in self.nodes}

    def node(self, node_id: int) -> RenderNode:
        try:
            return self._index[node_id]
        except KeyError:
            raise NotFoundError(f"no graph node {node_id} in {self.mode.value} view") from None

    def has_node(self, node_id: int) -> bool:
        return node_id in self._index

    def node_ids(self) -> List[int]:
        return [n.id for n in self.nodes]

    def successors(self, node_id: int) -> List[int]:
        return [e.dst for e in self.edges if e.src == node_id]

    def predecessors(self, node_id: int) -> List[int]:
        return [e.src for e in self.edges if e.dst == node_id]

    def with_colors(self, colors: Mapping[int, Color]) -> RenderableGraph:
        """Copy of this graph with background colors taken from *colors*."""
        return RenderableGraph(
            self.mode,
            [replace(n, color=colors.get(n.id)) for n in self.nodes],
            list(self.edges),
        )

    # ----- serialisation helpers --------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "nodes": [
                {
                    "id": n.id,
                    "text": n.text,
                    "hint": n.hint,
                    "color": n.color.hex if n.color else None,
                }
                for n in self.nodes
            ],
            "edges": [{"from": e.src, "to": e.dst} for e in self.edges],
        }

    def to_dot(self, title: Optional[str] = None) -> str:
        """Return a Graphviz DOT representation of this graph."""
        lines = ["digraph GraphSlick {"]
        if title:
            lines.append(f'  label="{_dot_escape(title)}";')
        lines.append("  node [shape=box, fontname=monospace, fontsize=10];")
        for n in self.nodes:
            attrs = [f'label="{_dot_escape(n.text)}"']
            if n.hint:
                attrs.append(f'tooltip="{_dot_escape(n.hint)}"')
            if n.color is not None:
                attrs.append(f'style=filled, fillcolor="{n.color.hex}"')
            lines.append(f"  N{n.id} [{', '.join(attrs)}];")
        for e in self.edges:
            lines.append(f"  N{e.src} -> N{e.dst};")
        lines.append("}")
        return "\n".join(lines)

    def to_graphviz(self, title: Optional[str] = None):
        """Return a ``graphviz.Digraph`` (needs the ``viz`` extra)."""
        import graphviz

        dot = graphviz.Digraph(name="GraphSlick")
        if title:
            dot.attr(label=title)
        dot.attr("node", shape="box", fontname="monospace", fontsize="10")
        for n in self.nodes:
            attrs = {"tooltip": n.hint} if n.hint else {}
            if n.color is not None:
                attrs.update(style="filled", fillcolor=n.color.hex)
            dot.node(f"N{n.id}", n.text, **attrs)
        for e in self.edges:
            dot.edge(f"N{e.src}", f"N{e.dst}")
        return dot

    def __repr__(self) -> str:
        return (
            f"RenderableGraph(mode={self.mode.value}, nodes={len(self.nodes)}, "
            f"edges={len(self.edges)})"
        )


def _dot_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


# ---------------------------------------------------------------------------
# Synthesizer
# ---------------------------------------------------------------------------

class GraphSynthesizer:
    """Builds :class:`RenderableGraph` projections of a group model."""

    def __init__(self, options: Optional[GraphSlickOptions] = None) -> None:
        self.options = options or GraphSlickOptions()

    def build(self, mode: ViewMode, flowchart: FlowChart, gm: GroupManager) -> RenderableGraph:
        if flowchart.is_empty():
            raise EmptyCfgError(f"flowchart {flowchart.title!r} has no blocks")
        if not gm.lookups_ready:
            raise PreconditionError("graph built before initialize_lookups()")

        node_defs = self._node_defs_by_block(flowchart, gm)
        if mode is ViewMode.FLAT:
            graph = self._build_flat(flowchart, gm, node_defs)
        elif mode is ViewMode.COMBINED:
            graph = self._build_combined(flowchart, gm, node_defs)
        else:
            raise ValueError(f"unknown view mode {mode!r}")
        _log.debug("Built %r for %s", graph, flowchart.title or "<function>")
        return graph

    @staticmethod
    def _node_defs_by_block(flowchart: FlowChart, gm: GroupManager) -> List[NodeDef]:
        by_range = {nd.range: nd for nd in gm.node_defs()}
        out: List[NodeDef] = []
        for b in flowchart:
            nd = by_range.get(b.range)
            if nd is None:
                raise NotFoundError(
                    f"block {b.start:#x}-{b.end:#x} is not covered by any node "
                    f"definition; sanitize against this flowchart first"
                )
            out.append(nd)
        return out

    # ----- flat -------------------------------------------------------------

    def _build_flat(
        self,
        flowchart: FlowChart,
        gm: GroupManager,
        node_defs: List[NodeDef],
    ) -> RenderableGraph:
        nodes = []
        for b, nd in zip(flowchart, node_defs):
            sg = gm.find_node_location(nd.nid).sg
            nodes.append(
                RenderNode(nd.nid, self.block_text(b, nd), self.block_hint(nd, sg))
            )
        edges = [
            RenderEdge(node_defs[src.index].nid, node_defs[dst.index].nid)
            for src, dst in flowchart.edges()
        ]
        return RenderableGraph(ViewMode.FLAT, nodes, edges)

    def block_text(self, block: BasicBlock, nd: NodeDef) -> str:
        text = block.label or f"{block.start:#x}-{block.end:#x}"
        if self.options.append_node_id:
            text += f"\nID({nd.nid})"
        return text

    @staticmethod
    def block_hint(nd: NodeDef, sg: SuperGroup) -> str:
        return f"{nd}\n[{sg.id}] {sg.get_display_name()}"

    # ----- combined ---------------------------------------------------------

    def _build_combined(
        self,
        flowchart: FlowChart,
        gm: GroupManager,
        node_defs: List[NodeDef],
    ) -> RenderableGraph:
        block_gid: List[int] = []
        nodes: List[RenderNode] = []
        seen: Set[int] = set()
        for nd in node_defs:
            loc = gm.find_node_location(nd.nid)
            gid = gm.assign_group_id(loc.ng)
            block_gid.append(gid)
            if gid in seen:
                continue
            seen.add(gid)
            nodes.append(
                RenderNode(gid, self.group_text(loc.sg, loc.ng, gid),
                           self.group_hint(loc.sg, loc.ng))
            )

        edges: List[RenderEdge] = []
        pairs: Set[Tuple[int, int]] = set()
        for src, dst in flowchart.edges():
            a, b = block_gid[src.index], block_gid[dst.index]
            if a == b or (a, b) in pairs:
                continue
            pairs.add((a, b))
            edges.append(RenderEdge(a, b))
        return RenderableGraph(ViewMode.COMBINED, nodes, edges)

    def group_text(self, sg: SuperGroup, ng: NodeGroup, gid: int) -> str:
        name = sg.get_display_name()
        lines = [name, f"({sg.id}) C({len(ng)})"]
        if self.options.append_node_id:
            lines.append(f"ID({gid})")
        if self.options.enlarge_group_name and "\n" not in name:
            lines = ["", *lines, ""]
        return "\n".join(lines)

    @staticmethod
    def group_hint(sg: SuperGroup, ng: NodeGroup) -> str:
        lines = [str(nd) for nd in ng]
        if sg.description:
            lines.insert(0, sg.description)
        return "\n".join(lines)
