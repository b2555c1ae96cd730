"""
graphslick.flowchart
====================

The function flowchart consumed by the group model: an ordered sequence of
basic blocks with ``[start, end)`` address ranges and successor lists.

The flowchart itself is produced by a *CFG provider* (a disassembler, an
exported JSON file, a test fixture, ...).  This module only defines the
container and a provider that reads a JSON export.

Public API
----------
    BasicBlock       - one basic block (start/end addresses, successors)
    FlowChart        - the ordered blocks of one function
    CfgProvider      - protocol: ``get_cfg(function_ref) -> FlowChart``
    JsonCfgProvider  - provider backed by a JSON export

JSON export layout::

    {
      "functions": [
        {
          "name": "sub_401000",
          "start": "0x401000",
          "blocks": [
            {"start": "0x401000", "end": "0x401010", "succs": [1, 2]},
            {"start": "0x401010", "end": "0x401020", "succs": [3],
             "label": "mov eax, 1"},
            ...
          ]
        }
      ]
    }

Successors are indices into the function's ``blocks`` list.  Addresses may
be integers or strings in any base understood by ``int(x, 0)``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import (
    Any,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Protocol,
    Union,
)

from graphslick.errors import NotFoundError

_log = logging.getLogger(__name__)

AddrRange = Tuple[int, int]


# ---------------------------------------------------------------------------
# BasicBlock
# ---------------------------------------------------------------------------

class BasicBlock:
    """A basic block of a function flowchart.

    Attributes
    ----------
    index : int
        Position of the block in its flowchart.
    start, end : int
        Address range ``[start, end)``.
    succs : list[int]
        Indices of the successor blocks, in provider order.
    label : str
        Optional display text (e.g. disassembly); may be empty.
    """

    __slots__ = ("index", "start", "end", "succs", "label")

    def __init__(
        self,
        index: int,
        start: int,
        end: int,
        succs: Optional[Sequence[int]] = None,
        label: str = "",
    ) -> None:
        self.index = index
        self.start = start
        self.end = end
        self.succs: List[int] = list(succs) if succs else []
        self.label = label

    @property
    def range(self) -> AddrRange:
        return (self.start, self.end)

    @property
    def size(self) -> int:
        return self.end - self.start

    def contains(self, address: int) -> bool:
        return self.start <= address < self.end

    def overlaps(self, start: int, end: int) -> bool:
        return self.start < end and start < self.end

    def __repr__(self) -> str:
        return (
            f"BasicBlock({self.index}, {self.start:#x}-{self.end:#x}, "
            f"succs={self.succs})"
        )


# ---------------------------------------------------------------------------
# FlowChart
# ---------------------------------------------------------------------------

class FlowChart:
    """Ordered basic blocks of a single function."""

    def __init__(self, title: str = "", blocks: Optional[Sequence[BasicBlock]] = None) -> None:
        self.title = title
        self.blocks: List[BasicBlock] = list(blocks) if blocks else []
        self._validate()
        self._by_range: Dict[AddrRange, BasicBlock] = {
            b.range: b for b in self.blocks
        }

    @classmethod
    def from_ranges(
        cls,
        ranges: Sequence[AddrRange],
        succs: Optional[Mapping[int, Sequence[int]]] = None,
        title: str = "",
    ) -> FlowChart:
        """Build a flowchart from ``(start, end)`` pairs and an optional
        ``index -> [successor index, ...]`` mapping."""
        succs = succs or {}
        blocks = [
            BasicBlock(i, start, end, succs.get(i, ()))
            for i, (start, end) in enumerate(ranges)
        ]
        return cls(title, blocks)

    def _validate(self) -> None:
        n = len(self.blocks)
        seen = set()
        for i, b in enumerate(self.blocks):
            if b.index != i:
                raise ValueError(f"block {b!r} stored at position {i}")
            if b.end <= b.start:
                raise ValueError(f"block {b!r} has an empty address range")
            if b.range in seen:
                raise ValueError(f"block {b!r} duplicates another block's range")
            seen.add(b.range)
            for s in b.succs:
                if not 0 <= s < n:
                    raise ValueError(f"block {b!r} has invalid successor {s}")

    # ----- queries ----------------------------------------------------------

    def __len__(self) -> int:
        return len(self.blocks)

    def __iter__(self) -> Iterator[BasicBlock]:
        return iter(self.blocks)

    def __getitem__(self, index: int) -> BasicBlock:
        return self.blocks[index]

    def is_empty(self) -> bool:
        return not self.blocks

    def successors(self, block: BasicBlock) -> List[BasicBlock]:
        return [self.blocks[s] for s in block.succs]

    def edges(self) -> Iterator[Tuple[BasicBlock, BasicBlock]]:
        """Yield ``(src, dst)`` pairs in block order, then successor order."""
        for b in self.blocks:
            for s in b.succs:
                yield b, self.blocks[s]

    def ranges(self) -> List[AddrRange]:
        return [b.range for b in self.blocks]

    def block_for_range(self, start: int, end: int) -> Optional[BasicBlock]:
        return self._by_range.get((start, end))

    def block_at(self, address: int) -> Optional[BasicBlock]:
        """Return the block containing *address*, or ``None``."""
        for b in self.blocks:
            if b.contains(address):
                return b
        return None

    def sorted_blocks(self) -> List[BasicBlock]:
        return sorted(self.blocks, key=lambda b: (b.start, b.end))

    def to_dot(self, title: Optional[str] = None) -> str:
        """Return a Graphviz DOT representation of the raw flowchart."""
        lines = ["digraph FlowChart {"]
        title = title or self.title
        if title:
            lines.append(f'  label="{title}";')
        lines.append("  node [shape=box, fontname=monospace, fontsize=10];")
        for b in self.blocks:
            lines.append(f'  BB{b.index} [label="{b.start:#x}-{b.end:#x}"];')
        for src, dst in self.edges():
            lines.append(f"  BB{src.index} -> BB{dst.index};")
        lines.append("}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"FlowChart({self.title!r}, blocks={len(self.blocks)})"


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------

FunctionRef = Union[int, str]


class CfgProvider(Protocol):
    """Anything able to return the flowchart of a function."""

    def get_cfg(self, function_ref: FunctionRef) -> FlowChart:
        """Return the flowchart of *function_ref* or raise
        :class:`~graphslick.errors.NotFoundError`."""
        ...


def _addr(value: Any) -> int:
    if isinstance(value, int):
        return value
    return int(str(value), 0)


class JsonCfgProvider:
    """CFG provider backed by a JSON export (see module docstring)."""

    def __init__(self, source: Union[str, Path, Mapping[str, Any]]) -> None:
        if isinstance(source, Mapping):
            data = source
            self.source_name = "<mapping>"
        else:
            path = Path(source)
            self.source_name = str(path)
            data = json.loads(path.read_text(encoding="utf-8"))
        self._charts: List[Tuple[str, int, FlowChart]] = []
        for func in data.get("functions", []):
            self._charts.append(self._load_function(func))
        _log.debug(
            "Loaded %d function flowchart(s) from %s",
            len(self._charts), self.source_name,
        )

    @staticmethod
    def _load_function(func: Mapping[str, Any]) -> Tuple[str, int, FlowChart]:
        blocks = []
        for i, raw in enumerate(func.get("blocks", [])):
            blocks.append(
                BasicBlock(
                    i,
                    _addr(raw["start"]),
                    _addr(raw["end"]),
                    [int(s) for s in raw.get("succs", [])],
                    raw.get("label", ""),
                )
            )
        if "start" in func:
            start = _addr(func["start"])
        else:
            start = blocks[0].start if blocks else 0
        name = func.get("name") or f"sub_{start:X}"
        return name, start, FlowChart(name, blocks)

    def function_names(self) -> List[str]:
        return [name for name, _, _ in self._charts]

    def get_cfg(self, function_ref: FunctionRef) -> FlowChart:
        for name, start, chart in self._charts:
            if isinstance(function_ref, str):
                if name == function_ref:
                    return chart
                continue
            if function_ref == start or chart.block_at(function_ref) is not None:
                return chart
        ref = function_ref if isinstance(function_ref, str) else f"{function_ref:#x}"
        raise NotFoundError(f"no function flowchart for {ref}")
