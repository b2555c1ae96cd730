# tests/test_colorgen.py
"""
Tests for deterministic highlight color generation.
"""

from graphslick.colorgen import (
    BASE_HUES,
    HUE_GAP,
    MAX_VARIANTS,
    NODE_SEL_COLOR,
    Color,
    ColorAssigner,
    variant_color,
)


class TestColor:

    def test_from_bgr(self):
        c = Color.from_bgr(0x7C75AD)
        assert c == Color(0xAD, 0x75, 0x7C)
        assert c.bgr == 0x7C75AD
        assert c.rgb == 0xAD757C

    def test_hex(self):
        assert Color(255, 0, 16).hex == "#ff0010"
        assert str(Color(0, 0, 0)) == "#000000"

    def test_selection_color(self):
        assert NODE_SEL_COLOR.hex == "#ad757c"


class TestVariants:

    def test_variants_distinct_within_batch(self):
        colors = [variant_color(BASE_HUES[0], i) for i in range(MAX_VARIANTS)]
        assert len(set(colors)) == MAX_VARIANTS

    def test_variants_wrap(self):
        assert variant_color(30, MAX_VARIANTS) == variant_color(30, 0)
        assert variant_color(30, MAX_VARIANTS + 5) == variant_color(30, 5)

    def test_batches_of_one_cycle_share_no_color(self):
        cg = ColorAssigner()
        batches = [cg.batch_colors(MAX_VARIANTS) for _ in BASE_HUES]
        seen = set()
        for colors in batches:
            assert not seen & set(colors)
            seen.update(colors)
        assert len(seen) == len(BASE_HUES) * MAX_VARIANTS

    def test_base_hues_evenly_spaced(self):
        assert sorted(BASE_HUES) == list(range(0, 360, HUE_GAP))

    def test_channels_in_range(self):
        for hue in BASE_HUES:
            for i in range(MAX_VARIANTS):
                assert all(0 <= ch <= 255 for ch in variant_color(hue, i))


class TestColorAssigner:

    def test_deterministic(self):
        def run():
            cg = ColorAssigner()
            out = []
            for _ in range(3):
                batch = cg.new_batch()
                out.extend(cg.next_variant(batch) for _ in range(4))
            return out

        assert run() == run()

    def test_batches_use_different_hues(self):
        cg = ColorAssigner()
        b1, b2 = cg.new_batch(), cg.new_batch()
        assert b1.base_hue != b2.base_hue
        assert cg.next_variant(b1) != cg.next_variant(b2)
        assert cg.batch_count == 2

    def test_batch_counter_advances(self):
        cg = ColorAssigner()
        batch = cg.new_batch()
        first = cg.next_variant(batch)
        second = cg.get_color_anyway(batch)
        assert first != second
        assert batch.counter == 2

    def test_batch_colors(self):
        colors = ColorAssigner().batch_colors(5)
        assert len(colors) == 5
        assert len(set(colors)) == 5

    def test_reset(self):
        cg = ColorAssigner()
        first = cg.batch_colors(1)
        cg.batch_colors(1)
        cg.reset()
        assert cg.batch_count == 0
        assert cg.batch_colors(1) == first
