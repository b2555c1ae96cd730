"""
graphslick.graphview
====================

Interactive state of one displayed graph: view mode, the current
:class:`~graphslick.synthesizer.RenderableGraph`, node selection,
highlighting and the current node.

A :class:`GraphView` does not draw anything itself.  The host widget (or
the CLI) feeds user events through a :class:`GraphViewEvents` object and
asks :meth:`GraphView.render` for the colored graph to draw.  With
``manual_refresh_mode`` off, every state change pushes a fresh rendering
to the ``"refresh"`` handlers; with it on, the view only marks itself
dirty until :meth:`GraphView.refresh` is called.

Node ids are mode dependent: NodeDef ``nid`` in ``FLAT`` mode, the
manager's synthetic NodeGroup id in ``COMBINED`` mode.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from graphslick.colorgen import NODE_SEL_COLOR, Color, ColorAssigner
from graphslick.combiner import GroupCombiner
from graphslick.errors import NotFoundError, PreconditionError
from graphslick.flowchart import FlowChart
from graphslick.groupman import GroupManager, NodeGroup, SuperGroup
from graphslick.options import GraphSlickOptions, ViewMode
from graphslick.synthesizer import GraphSynthesizer, RenderableGraph

_log = logging.getLogger(__name__)

Handler = Callable[..., Any]


class GraphViewEvents:
    """Event name -> handlers, owned by the view that uses it."""

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = {}

    def connect(self, event: str, handler: Handler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def disconnect(self, event: str, handler: Handler) -> None:
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, *args: Any, **kwargs: Any) -> Any:
        """Call every handler of *event*; return the last non-``None`` result."""
        result = None
        for handler in list(self._handlers.get(event, ())):
            value = handler(*args, **kwargs)
            if value is not None:
                result = value
        return result

    def handlers(self, event: str) -> List[Handler]:
        return list(self._handlers.get(event, ()))

    def clear(self) -> None:
        self._handlers.clear()


class GraphView:
    """Selection, highlighting and mode switching over one group model."""

    def __init__(
        self,
        gm: GroupManager,
        flowchart: FlowChart,
        options: Optional[GraphSlickOptions] = None,
        events: Optional[GraphViewEvents] = None,
    ) -> None:
        self.gm = gm
        self.flowchart = flowchart
        self.options = options or GraphSlickOptions()
        self.events = events or GraphViewEvents()
        self._synth = GraphSynthesizer(self.options)

        self.mode: Optional[ViewMode] = None
        self.graph: Optional[RenderableGraph] = None
        self.cur_node: Optional[int] = None
        self.in_sel_mode = False
        self.dirty = False
        self.closed = False
        self._sel: Dict[int, Color] = {}
        self._hl: Dict[int, Color] = {}

        self._own_handlers: Dict[str, Handler] = {
            "click": self._on_click,
            "dblclick": self._on_dblclick,
            "hint": self._on_hint,
            "close": self._on_close,
        }
        for event, handler in self._own_handlers.items():
            self.events.connect(event, handler)

    # ----- context manager --------------------------------------------------

    def __enter__(self) -> GraphView:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.graph = None
        self.mode = None
        self.cur_node = None
        self._sel.clear()
        self._hl.clear()
        # Shared event objects outlive the view; only drop our own handlers.
        for event, handler in self._own_handlers.items():
            self.events.disconnect(event, handler)
        _log.debug("Graph view closed")

    # ----- state ------------------------------------------------------------

    def _require_graph(self) -> RenderableGraph:
        if self.closed:
            raise PreconditionError("graph view is closed")
        if self.graph is None:
            raise PreconditionError("graph view used before switch_mode()")
        return self.graph

    @property
    def selection(self) -> Dict[int, Color]:
        self._require_graph()
        return dict(self._sel)

    @property
    def highlighting(self) -> Dict[int, Color]:
        self._require_graph()
        return dict(self._hl)

    def selected_ids(self) -> List[int]:
        self._require_graph()
        return list(self._sel)

    def _changed(self) -> None:
        self.dirty = True
        if not self.options.manual_refresh_mode:
            self.refresh()

    def refresh(self) -> RenderableGraph:
        """Push the current rendering to the ``"refresh"`` handlers."""
        graph = self.render()
        self.dirty = False
        self.events.emit("refresh", graph)
        return graph

    # ----- building ---------------------------------------------------------

    def switch_mode(self, mode: ViewMode) -> RenderableGraph:
        """Rebuild the graph in *mode* and reset selection, highlighting
        and the current node."""
        if self.closed:
            raise PreconditionError("graph view is closed")
        graph = self._synth.build(mode, self.flowchart, self.gm)
        self.mode = mode
        self.graph = graph
        self._sel.clear()
        self._hl.clear()
        self.cur_node = None
        self.in_sel_mode = False
        _log.info("Switched to %s view: %r", mode.value, graph)
        self.refresh()
        return graph

    def redo_layout(self) -> RenderableGraph:
        """Rebuild the graph in the current mode, keeping the state of
        nodes that still exist."""
        self._require_graph()
        graph = self._synth.build(self.mode, self.flowchart, self.gm)
        self.graph = graph
        self._sel = {k: v for k, v in self._sel.items() if graph.has_node(k)}
        self._hl = {k: v for k, v in self._hl.items() if graph.has_node(k)}
        if self.cur_node is not None and not graph.has_node(self.cur_node):
            self.cur_node = None
        self.events.emit("layout", graph)
        self._changed()
        return graph

    def render(self) -> RenderableGraph:
        """The current graph colored by highlight, then selection."""
        graph = self._require_graph()
        colors = dict(self._hl)
        colors.update(self._sel)
        return graph.with_colors(colors)

    # ----- selection --------------------------------------------------------

    def select(self, node_id: int) -> None:
        graph = self._require_graph()
        graph.node(node_id)
        self.cur_node = node_id
        self.events.emit("select", node_id)

    def toggle_select_node(self, node_id: int) -> bool:
        """Flip *node_id*'s selection; return whether it is now selected."""
        graph = self._require_graph()
        graph.node(node_id)
        if node_id in self._sel:
            del self._sel[node_id]
            selected = False
        else:
            self._sel[node_id] = NODE_SEL_COLOR
            selected = True
        self._changed()
        return selected

    def set_sel_mode(self, flag: bool) -> None:
        self._require_graph()
        self.in_sel_mode = flag
        if not flag and self._sel:
            self.clear_selection()

    def clear_selection(self) -> None:
        self._require_graph()
        self._sel.clear()
        self._changed()

    # ----- highlighting -----------------------------------------------------

    def clear_highlighting(self) -> None:
        self._require_graph()
        self._hl.clear()
        self._changed()

    def node_ids_of(self, ng: NodeGroup) -> List[int]:
        """Graph node ids showing *ng* in the current mode."""
        graph = self._require_graph()
        if self.mode is ViewMode.FLAT:
            return [nd.nid for nd in ng if graph.has_node(nd.nid)]
        gid = self.gm.group_id(ng)
        return [gid] if gid is not None and graph.has_node(gid) else []

    def highlight_group(self, ng: NodeGroup, color: Color) -> None:
        for node_id in self.node_ids_of(ng):
            self._hl[node_id] = color
        self._changed()

    def highlight_groups(self, groups: Iterable[NodeGroup], assigner: ColorAssigner) -> None:
        """Highlight *groups* as one color family."""
        batch = assigner.new_batch()
        for ng in groups:
            self.highlight_group(ng, assigner.next_variant(batch))

    def highlight_supergroups(
        self, supergroups: Iterable[SuperGroup], assigner: ColorAssigner
    ) -> int:
        """One color family per SuperGroup, one variant per NodeGroup.

        Synthetic SuperGroups are skipped unless the
        ``highlight_synthetic_nodes`` option is set.  Returns the number of
        SuperGroups highlighted.
        """
        self._require_graph()
        count = 0
        for sg in supergroups:
            if sg.is_synthetic and not self.options.highlight_synthetic_nodes:
                continue
            self.highlight_groups(sg.groups, assigner)
            count += 1
        return count

    def find_and_highlight(self, pattern: str) -> Optional[int]:
        """Highlight the SuperGroups matching *pattern*.

        Returns the node id to jump to (first group of the first match), or
        ``None`` when nothing matched.
        """
        self._require_graph()
        found = self.gm.find_supergroups(pattern)
        if not found:
            _log.info("No group matches %r", pattern)
            return None
        self._hl.clear()
        self.highlight_supergroups(found, ColorAssigner())
        for sg in found:
            ng = sg.first_group()
            if ng is not None:
                return self.get_ng_id(ng)
        return None

    # ----- id mapping -------------------------------------------------------

    def get_ng_id(self, ng: NodeGroup) -> int:
        """Node id of *ng* in the current mode (its first NodeDef's nid in
        FLAT mode)."""
        self._require_graph()
        if self.mode is ViewMode.FLAT:
            if not ng.nodes:
                raise NotFoundError(f"{ng!r} has no nodes")
            return ng.nodes[0].nid
        gid = self.gm.group_id(ng)
        if gid is None:
            raise NotFoundError(f"{ng!r} is not shown in the combined view")
        return gid

    def get_ng_from_ngid(self, node_id: int) -> NodeGroup:
        self._require_graph()
        if self.mode is ViewMode.FLAT:
            return self.gm.find_node_location(node_id).ng
        return self.gm.group_from_id(node_id)

    def ngid_to_sg(self, node_id: int) -> SuperGroup:
        self._require_graph()
        if self.mode is ViewMode.FLAT:
            return self.gm.find_node_location(node_id).sg
        ng = self.gm.group_from_id(node_id)
        return self.gm.find_node_location(ng.nodes[0].nid).sg

    # ----- editing ----------------------------------------------------------

    def combine_request(self, selected_ids: Optional[Iterable[int]] = None) -> NodeGroup:
        """Merge the groups behind *selected_ids* (default: the current
        selection) and rebuild the graph."""
        self._require_graph()
        if self.mode is not ViewMode.COMBINED:
            raise PreconditionError(
                "groups can only be combined in the combined view",
                hint="switch to the combined view first",
            )
        ids = list(self._sel) if selected_ids is None else list(selected_ids)
        groups = [self.get_ng_from_ngid(i) for i in ids]
        new_group = GroupCombiner(self.gm).combine(groups)

        self._sel.clear()
        self._hl.clear()
        self.graph = self._synth.build(self.mode, self.flowchart, self.gm)
        self.cur_node = self.get_ng_id(new_group)
        self._changed()
        return new_group

    def edit_description(self, sg_id: str, text: str) -> None:
        self.gm.supergroup(sg_id).description = text
        if self.graph is not None:
            self.redo_layout()

    def rename(self, sg_id: str, name: str) -> None:
        self.gm.supergroup(sg_id).name = name
        if self.graph is not None:
            self.redo_layout()

    # ----- event handlers ---------------------------------------------------

    def _on_click(self, node_id: int) -> None:
        if self.in_sel_mode:
            self.toggle_select_node(node_id)
        else:
            self.select(node_id)

    def _on_dblclick(self, node_id: int) -> int:
        """Address to jump to for *node_id*."""
        if self.mode is ViewMode.FLAT:
            return self.gm.node_def(node_id).start
        return self.get_ng_from_ngid(node_id).nodes[0].start

    def _on_hint(self, node_id: int) -> str:
        return self._require_graph().node(node_id).hint

    def _on_close(self) -> None:
        self.close()
