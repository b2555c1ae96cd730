"""
graphslick.colorgen
===================

Deterministic color generation for highlighting node groups.

A *batch* is an ordered run of related items that should look like one
family (for example every NodeGroup of one SuperGroup).  Each batch picks
the next hue of a fixed base palette spaced ``HUE_GAP`` degrees apart; each
variant inside the batch steps the lightness and saturation and nudges the
hue by less than half the gap.  The first ``MAX_VARIANTS`` variants of a
batch are pairwise distinct, and the batches of one palette cycle never
share a color.  Nothing is random: the same sequence of calls on a fresh
:class:`ColorAssigner` always yields the same colors.

Typical usage::

    cg = ColorAssigner()
    batch = cg.new_batch()
    for ng in sg.groups:
        color = cg.next_variant(batch)
"""

from __future__ import annotations

import colorsys
from dataclasses import dataclass
from typing import List, NamedTuple, Tuple

# Base hues in degrees, ordered so that consecutive batches are far apart.
HUE_GAP: int = 30
BASE_HUES: Tuple[int, ...] = (
    210, 30, 120, 300, 0, 180, 60, 240, 330, 90, 150, 270,
)

L_START: float = 0.80
L_INT: float = -0.07
L_STEPS: int = 4
S_START: float = 0.45
S_INT: float = 0.15
S_STEPS: int = 4
# (H_STEPS - 1) * H_INT must stay below HUE_GAP / 2.
H_INT: int = 3
H_STEPS: int = 4

MAX_VARIANTS: int = L_STEPS * S_STEPS * H_STEPS


class Color(NamedTuple):
    """An RGB color, 8 bits per channel."""

    r: int
    g: int
    b: int

    @property
    def hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"

    @property
    def rgb(self) -> int:
        return (self.r << 16) | (self.g << 8) | self.b

    @property
    def bgr(self) -> int:
        """0xBBGGRR, the byte order used by the host graph widget."""
        return (self.b << 16) | (self.g << 8) | self.r

    @classmethod
    def from_bgr(cls, value: int) -> Color:
        return cls(value & 0xFF, (value >> 8) & 0xFF, (value >> 16) & 0xFF)

    def __str__(self) -> str:
        return self.hex


NODE_SEL_COLOR: Color = Color.from_bgr(0x7C75AD)


@dataclass
class BatchHandle:
    """State of one highlight batch."""

    index: int
    base_hue: int
    counter: int = 0


def variant_color(base_hue: int, variant: int) -> Color:
    """Return the color of *variant* (taken modulo ``MAX_VARIANTS``)."""
    variant %= MAX_VARIANTS
    l_step = variant % L_STEPS
    s_step = (variant // L_STEPS) % S_STEPS
    h_step = variant // (L_STEPS * S_STEPS)
    hue = ((base_hue + h_step * H_INT) % 360) / 360.0
    lightness = L_START + l_step * L_INT
    saturation = S_START + s_step * S_INT
    r, g, b = colorsys.hls_to_rgb(hue, lightness, saturation)
    return Color(round(r * 255), round(g * 255), round(b * 255))


class ColorAssigner:
    """Hands out batches and color variants; one instance per session."""

    def __init__(self) -> None:
        self._batches = 0

    @property
    def batch_count(self) -> int:
        return self._batches

    def new_batch(self) -> BatchHandle:
        """Start a new batch on the next base hue."""
        idx = self._batches
        self._batches += 1
        return BatchHandle(index=idx, base_hue=BASE_HUES[idx % len(BASE_HUES)])

    def next_variant(self, handle: BatchHandle) -> Color:
        """Return the next color of *handle*'s family, wrapping after
        ``MAX_VARIANTS`` variants."""
        color = variant_color(handle.base_hue, handle.counter)
        handle.counter += 1
        return color

    # Never fails: wraps instead of running out.
    get_color_anyway = next_variant

    def batch_colors(self, count: int) -> List[Color]:
        """Convenience: open a batch and take *count* variants from it."""
        handle = self.new_batch()
        return [self.next_variant(handle) for _ in range(count)]

    def reset(self) -> None:
        self._batches = 0
