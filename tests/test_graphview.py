# tests/test_graphview.py
"""
Tests for view state: selection, highlighting, mode switching, events.
"""

from unittest.mock import MagicMock

import pytest

from graphslick.colorgen import NODE_SEL_COLOR, Color, ColorAssigner
from graphslick.errors import InsufficientSelectionError, PreconditionError
from graphslick.graphview import GraphView, GraphViewEvents
from graphslick.options import GraphSlickOptions, ViewMode
from tests.conftest import DIAMOND_DEFS, DIAMOND_RANGES, E, SPLIT_DEFS, make_flowchart, make_manager

RED = Color(255, 0, 0)


@pytest.fixture
def view(gm, diamond):
    v = GraphView(gm, diamond)
    yield v
    v.close()


class TestBeforeFirstMode:

    def test_state_unavailable(self, view):
        with pytest.raises(PreconditionError):
            view.selection
        with pytest.raises(PreconditionError):
            view.render()
        with pytest.raises(PreconditionError):
            view.toggle_select_node(0)


class TestModes:

    def test_switch_mode_builds_graph(self, view):
        graph = view.switch_mode(ViewMode.FLAT)
        assert len(graph.nodes) == 4
        graph = view.switch_mode(ViewMode.COMBINED)
        assert len(graph.nodes) == 2
        assert view.mode is ViewMode.COMBINED

    def test_switch_mode_resets_state(self, view):
        view.switch_mode(ViewMode.FLAT)
        view.set_sel_mode(True)
        view.toggle_select_node(0)
        view.highlight_group(view.get_ng_from_ngid(2), RED)
        view.select(3)
        view.switch_mode(ViewMode.FLAT)
        assert view.selection == {}
        assert view.highlighting == {}
        assert view.cur_node is None
        assert not view.in_sel_mode

    def test_redo_layout_keeps_state(self, view):
        view.switch_mode(ViewMode.COMBINED)
        view.toggle_select_node(1)
        view.redo_layout()
        assert view.selected_ids() == [1]


class TestSelection:

    def test_toggle(self, view):
        view.switch_mode(ViewMode.FLAT)
        assert view.toggle_select_node(0) is True
        assert view.selection == {0: NODE_SEL_COLOR}
        assert view.toggle_select_node(0) is False
        assert view.selection == {}

    def test_selection_beats_highlight(self, view):
        view.switch_mode(ViewMode.FLAT)
        view.highlight_group(view.get_ng_from_ngid(0), RED)
        view.toggle_select_node(0)
        graph = view.render()
        assert graph.node(0).color == NODE_SEL_COLOR
        assert graph.node(1).color == RED
        assert graph.node(2).color is None

    def test_leaving_sel_mode_clears_selection(self, view):
        view.switch_mode(ViewMode.FLAT)
        view.set_sel_mode(True)
        view.toggle_select_node(1)
        view.set_sel_mode(False)
        assert view.selection == {}

    def test_select_sets_current_node(self, view):
        view.switch_mode(ViewMode.COMBINED)
        view.select(1)
        assert view.cur_node == 1


class TestHighlighting:

    def test_highlight_group_in_both_modes(self, view, gm):
        ng = gm.supergroup("sg2").groups[0]
        view.switch_mode(ViewMode.FLAT)
        view.highlight_group(ng, RED)
        assert view.highlighting == {2: RED, 3: RED}
        view.switch_mode(ViewMode.COMBINED)
        view.highlight_group(ng, RED)
        assert view.highlighting == {1: RED}

    def test_supergroup_batches(self):
        fc = make_flowchart()
        gm = make_manager(SPLIT_DEFS, fc)
        with GraphView(gm, fc) as view:
            view.switch_mode(ViewMode.COMBINED)
            assigner = ColorAssigner()
            assert view.highlight_supergroups(gm.supergroups, assigner) == 3
            colors = view.highlighting
            assert len(colors) == 4
            # both groups of sg2 are variants of one batch
            assert colors[1] != colors[2]
            assert assigner.batch_count == 3

    def test_synthetic_skipped_unless_enabled(self):
        fc = make_flowchart(DIAMOND_RANGES + [E])
        gm = make_manager(DIAMOND_DEFS, fc)
        syn = gm.supergroup("syn_50")
        for enabled, expected in ((False, 2), (True, 3)):
            opts = GraphSlickOptions(highlight_synthetic_nodes=enabled)
            with GraphView(gm, fc, opts) as view:
                view.switch_mode(ViewMode.COMBINED)
                count = view.highlight_supergroups(gm.supergroups, ColorAssigner())
                assert count == expected
                syn_id = view.get_ng_id(syn.groups[0])
                assert (syn_id in view.highlighting) is enabled

    def test_find_and_highlight(self, view):
        view.switch_mode(ViewMode.COMBINED)
        assert view.find_and_highlight("TAIL") == 1
        assert list(view.highlighting) == [1]
        assert view.find_and_highlight("no such group") is None

    def test_clear_highlighting(self, view):
        view.switch_mode(ViewMode.FLAT)
        view.find_and_highlight("head")
        view.clear_highlighting()
        assert view.highlighting == {}


class TestIdMapping:

    def test_flat(self, view, gm):
        view.switch_mode(ViewMode.FLAT)
        ng = gm.supergroup("sg1").groups[0]
        assert view.get_ng_id(ng) == 0
        assert view.get_ng_from_ngid(1) is ng
        assert view.ngid_to_sg(3).id == "sg2"

    def test_combined(self, view, gm):
        view.switch_mode(ViewMode.COMBINED)
        ng = gm.supergroup("sg2").groups[0]
        assert view.get_ng_id(ng) == 1
        assert view.get_ng_from_ngid(1) is ng
        assert view.ngid_to_sg(0).id == "sg1"


class TestEditing:

    def test_combine_request(self, view, gm):
        view.switch_mode(ViewMode.COMBINED)
        view.set_sel_mode(True)
        view.toggle_select_node(0)
        view.toggle_select_node(1)
        new = view.combine_request()
        assert new.nids() == [0, 1, 2, 3]
        assert view.graph.node_ids() == [2]
        assert view.graph.edges == []
        assert view.cur_node == 2
        assert view.selection == {}

    def test_combine_needs_two(self, view, gm):
        view.switch_mode(ViewMode.COMBINED)
        before = gm.snapshot()
        with pytest.raises(InsufficientSelectionError):
            view.combine_request([1])
        assert gm.snapshot() == before
        assert view.graph.node_ids() == [0, 1]

    def test_combine_only_in_combined_mode(self, view):
        view.switch_mode(ViewMode.FLAT)
        with pytest.raises(PreconditionError):
            view.combine_request([0, 2])

    def test_rename_and_describe(self, view, gm):
        view.switch_mode(ViewMode.COMBINED)
        view.rename("sg1", "Entry")
        view.edit_description("sg2", "exit path")
        assert "Entry" in view.graph.node(0).text
        assert view.graph.node(1).hint.startswith("exit path")
        assert gm.supergroup("sg1").name == "Entry"


class TestRefreshAndEvents:

    def test_manual_refresh(self, gm, diamond):
        on_refresh = MagicMock()
        events = GraphViewEvents()
        events.connect("refresh", on_refresh)
        with GraphView(gm, diamond, GraphSlickOptions(manual_refresh_mode=True), events) as view:
            view.switch_mode(ViewMode.FLAT)
            assert on_refresh.call_count == 1
            view.toggle_select_node(0)
            assert on_refresh.call_count == 1
            assert view.dirty
            view.refresh()
            assert on_refresh.call_count == 2
            assert not view.dirty

    def test_automatic_refresh(self, gm, diamond):
        on_refresh = MagicMock()
        events = GraphViewEvents()
        events.connect("refresh", on_refresh)
        with GraphView(gm, diamond, GraphSlickOptions(manual_refresh_mode=False), events) as view:
            view.switch_mode(ViewMode.FLAT)
            view.toggle_select_node(0)
            assert on_refresh.call_count == 2
            rendered = on_refresh.call_args[0][0]
            assert rendered.node(0).color == NODE_SEL_COLOR

    def test_click_events(self, view):
        view.switch_mode(ViewMode.FLAT)
        view.events.emit("click", 2)
        assert view.cur_node == 2
        view.set_sel_mode(True)
        view.events.emit("click", 2)
        assert view.selected_ids() == [2]

    def test_dblclick_and_hint(self, view):
        view.switch_mode(ViewMode.COMBINED)
        assert view.events.emit("dblclick", 1) == 0x30
        assert "3:0x40:0x50" in view.events.emit("hint", 1)

    def test_close_releases_state(self, gm, diamond):
        events = GraphViewEvents()
        keep = MagicMock()
        events.connect("refresh", keep)
        with GraphView(gm, diamond, events=events) as view:
            view.switch_mode(ViewMode.FLAT)
        assert view.closed
        assert view.graph is None
        assert events.handlers("click") == []
        assert events.handlers("refresh") == [keep]
        with pytest.raises(PreconditionError):
            view.render()

    def test_close_event(self, view):
        view.switch_mode(ViewMode.FLAT)
        view.events.emit("close")
        assert view.closed
