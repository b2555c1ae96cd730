# tests/test_panel.py
"""
Tests for the group chooser listing.
"""

from graphslick.groupman import GroupManager
from graphslick.panel import (
    LEVEL_FILE,
    LEVEL_GROUP,
    LEVEL_SUPERGROUP,
    format_lines,
    populate_lines,
)
from tests.conftest import SPLIT_DEFS


class TestPopulateLines:

    def test_three_levels(self):
        gm = GroupManager.parse(SPLIT_DEFS, source_name="/tmp/work/f1.bbgroup")
        lines = populate_lines(gm)
        assert [ln.level for ln in lines] == [
            LEVEL_FILE,
            LEVEL_SUPERGROUP, LEVEL_GROUP,
            LEVEL_SUPERGROUP, LEVEL_GROUP, LEVEL_GROUP,
            LEVEL_SUPERGROUP, LEVEL_GROUP,
        ]
        assert lines[0].text == "f1.bbgroup"
        assert lines[3].text == "Left (sg2) C(2)"
        assert lines[3].address == "0x20"
        assert lines[5].text == "C(1):(2:0x30:0x40)"
        assert lines[5].address == "0x30"
        assert lines[5].ng is gm.supergroup("sg2").groups[1]

    def test_unnamed_and_empty(self):
        gm = GroupManager.parse("a;;;(0:0x10:0x20)")
        gm.supergroup("a").groups.clear()
        lines = populate_lines(gm)
        assert lines[0].text == "<groups>"
        assert lines[1].text == "No name (a) C(0)"
        assert lines[1].address == ""
        assert len(lines) == 2


class TestFormatLines:

    def test_columns(self):
        gm = GroupManager.parse("a;Loop;;(0:0x10:0x20, 1:0x20:0x30)", source_name="f.bbgroup")
        out = format_lines(populate_lines(gm)).splitlines()
        assert out[0] == "f.bbgroup"
        assert out[1].startswith("    Loop (a) C(1)")
        assert out[1].endswith("0x10")
        assert out[2].startswith("        C(2):(0:0x10:0x20, 1:0x20:0x30)")
