# tests/test_sanitizer.py
"""
Tests for reconciling a group model with the live flowchart.
"""

import logging

import pytest

from graphslick.errors import EmptyCfgError
from graphslick.flowchart import FlowChart
from graphslick.groupman import GroupManager
from graphslick.sanitizer import ActionKind, Sanitizer, sanitize
from tests.conftest import A, B, C, D, DIAMOND_DEFS, DIAMOND_RANGES, E, make_flowchart


def _ranges(gm):
    return sorted(nd.range for nd in gm.node_defs())


class TestCleanInput:

    def test_no_findings(self, diamond):
        gm = GroupManager.parse(DIAMOND_DEFS)
        report = Sanitizer().run(gm, diamond)
        assert not report
        assert report.summary() == "0 split, 0 dropped, 0 synthesized"
        assert gm.is_sanitized
        assert _ranges(gm) == DIAMOND_RANGES

    def test_idempotent(self, diamond):
        gm = GroupManager.parse(DIAMOND_DEFS + "stale;;;(9:0x100:0x110)\n")
        first = sanitize(gm, make_flowchart(DIAMOND_RANGES + [E]))
        assert first
        before = gm.snapshot()
        second = sanitize(gm, make_flowchart(DIAMOND_RANGES + [E]))
        assert not second
        assert gm.snapshot() == before


class TestCoverage:

    def test_uncovered_block_synthesized(self):
        gm = GroupManager.parse(DIAMOND_DEFS)
        report = sanitize(gm, make_flowchart(DIAMOND_RANGES + [E]))
        (action,) = report.of_kind(ActionKind.SYNTHESIZED)
        assert (action.start, action.end) == E
        sg = gm.supergroup("syn_50")
        assert sg.is_synthetic
        assert sg.gcount() == 1
        assert sg.groups[0][0].range == E
        assert _ranges(gm) == DIAMOND_RANGES + [E]

    def test_synthetic_id_not_reused(self):
        gm = GroupManager.parse(DIAMOND_DEFS + "syn_50;taken;;(9:0x100:0x110)\n")
        sanitize(gm, make_flowchart(DIAMOND_RANGES + [E]))
        assert gm.supergroup("syn_50_2").is_synthetic
        assert not gm.supergroup("syn_50").is_synthetic

    def test_every_block_in_exactly_one_node(self):
        gm = GroupManager.parse(
            "a;;;(0:0x10:0x30)\n"
            "b;;;(1:0x20:0x30), (2:0x40:0x50)\n"
            "c;;;(3:0x400:0x410)\n"
        )
        sanitize(gm, make_flowchart(DIAMOND_RANGES + [E]))
        assert _ranges(gm) == DIAMOND_RANGES + [E]
        assert gm.supergroup("a").groups[0].ranges() == [A]
        assert [ng.ranges() for ng in gm.supergroup("b").groups] == [[B], [D]]


class TestRepairs:

    def test_exact_match_wins_over_earlier_overlap(self):
        gm = GroupManager.parse("a;;;(0:0x10:0x30)\nb;;;(1:0x20:0x30)\n")
        report = sanitize(gm, make_flowchart())
        assert not report.of_kind(ActionKind.DROPPED)
        (action,) = report.of_kind(ActionKind.SPLIT)
        assert action.sg_id == "a"
        assert action.pieces == (A,)
        assert gm.supergroup("a").groups[0].ranges() == [A]
        assert gm.supergroup("b").groups[0].ranges() == [B]

    def test_stale_node_dropped(self, caplog):
        gm = GroupManager.parse(DIAMOND_DEFS + "old;Old;;(9:0x100:0x110)\n")
        with caplog.at_level(logging.WARNING, logger="graphslick.sanitizer"):
            report = sanitize(gm, make_flowchart())
        (action,) = report.of_kind(ActionKind.DROPPED)
        assert action.sg_id == "old"
        assert "stale" in action.message
        assert "stale" in caplog.text
        # the SuperGroup survives without groups
        assert gm.supergroup("old").is_empty()

    def test_duplicate_node_dropped(self):
        gm = GroupManager.parse(DIAMOND_DEFS + "dup;;;(9:0x10:0x20), (10:0x30:0x40)\n")
        report = sanitize(gm, make_flowchart())
        dropped = report.of_kind(ActionKind.DROPPED)
        assert len(dropped) == 2
        assert all("duplicate" in a.message for a in dropped)
        assert gm.supergroup("dup").is_empty()
        assert gm.supergroup("sg1").groups[0].ranges() == [A, B]

    def test_merged_node_split(self):
        gm = GroupManager.parse("a;;;(0:0x10:0x30)\nb;;;(1:0x30:0x40, 2:0x40:0x50)\n")
        report = sanitize(gm, make_flowchart())
        (action,) = report.of_kind(ActionKind.SPLIT)
        assert action.pieces == (A, B)
        ng = gm.supergroup("a").groups[0]
        assert ng.ranges() == [A, B]

    def test_partial_overlap_keeps_unclaimed_part(self):
        gm = GroupManager.parse("a;;;(0:0x10:0x20)\nb;;;(1:0x18:0x38)\n")
        report = sanitize(gm, make_flowchart())
        (action,) = report.of_kind(ActionKind.SPLIT)
        assert action.pieces == (B, C)
        assert gm.supergroup("b").groups[0].ranges() == [B, C]
        assert len(report.of_kind(ActionKind.SYNTHESIZED)) == 1

    def test_node_ids_renumbered_by_address(self):
        gm = GroupManager.parse("a;;;(7:0x40:0x50)\nb;;;(3:0x10:0x20, 5:0x30:0x40)\n")
        sanitize(gm, make_flowchart())
        by_nid = sorted((nd.nid, nd.range) for nd in gm.node_defs())
        assert by_nid == [(0, A), (1, B), (2, C), (3, D)]

    def test_counts(self):
        gm = GroupManager.parse("a;;;(0:0x10:0x30)\nb;;;(9:0x100:0x110)\n")
        report = sanitize(gm, make_flowchart())
        assert report.counts() == {"split": 1, "dropped": 1, "synthesized": 2}
        assert len(report) == 4


class TestFailures:

    def test_empty_flowchart_leaves_model_untouched(self):
        gm = GroupManager.parse(DIAMOND_DEFS)
        before = gm.snapshot()
        with pytest.raises(EmptyCfgError):
            sanitize(gm, FlowChart("empty"))
        assert gm.snapshot() == before
        assert not gm.is_sanitized
