"""
bbgroup.py: reader and writer for ``.bbgroup`` group definitions
=================================================================

One SuperGroup per line::

    # comment
    <id> ; <name> ; <description> ; (nid:start:end, ...) (nid:start:end, ...) [; synthetic]

* fields are bare text (no ``;``, ``"`` or newline) or double-quoted
  strings with backslash escapes;
* numbers are decimal without leading zeros or ``0x`` hexadecimal;
* a node group is a parenthesised, comma-separated list of NodeDefs;
  consecutive node groups may be separated by blanks or commas;
* a SuperGroup without node groups keeps its line with nothing after the
  third ``;`` (``sg3;Tail;;``);
* the trailing ``synthetic`` flag marks SuperGroups manufactured by the
  sanitizer, so a reload recognises them as reconciliation artifacts.

Usage::

    from graphslick import bbgroup

    gm = bbgroup.load_file("f1.bbgroup")   # raw, unsanitized hierarchy
    text = bbgroup.dumps(gm)

Depends on:
    - parsimonious (PEG parser)
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple, Union

from parsimonious.exceptions import IncompleteParseError, VisitationError
from parsimonious.exceptions import ParseError as PegParseError
from parsimonious.grammar import Grammar
from parsimonious.nodes import NodeVisitor

from graphslick.errors import ErrorCode, ParseError
from graphslick.groupman import GroupManager, NodeDef, NodeGroup, SuperGroup

logger = logging.getLogger(__name__)

SYNTHETIC_FLAG = "synthetic"


# ═══════════════════════════════════════════════════════════════════
#  GRAMMAR (Parsimonious PEG)
# ═══════════════════════════════════════════════════════════════════

BBGROUP_GRAMMAR = Grammar(r'''
    file            = item* hspace?

    item            = blank_line / comment_line / sg_line
    blank_line      = hspace? newline
    comment_line    = hspace? ~r"#[^\r\n]*" newline?
    sg_line         = hspace? field sep field sep field sep groups? flag? hspace? eol

    flag            = sep "synthetic"
    sep             = hspace? ";" hspace?

    field           = quoted / bare
    quoted          = ~r'"(?:[^"\\\r\n]|\\.)*"'
    bare            = ~r'[^;"\r\n]*'

    groups          = group (group_sep group)*
    group_sep       = hspace? ","? hspace?
    group           = "(" hspace? nodedef (hspace? "," hspace? nodedef)* hspace? ")"
    nodedef         = number hspace? ":" hspace? number hspace? ":" hspace? number

    number          = ~r"0[xX][0-9a-fA-F]+|0|[1-9][0-9]*"
    hspace          = ~r"[ \t]+"
    eol             = newline / ~r"\Z"
    newline         = ~r"\r?\n"
''')


# ═══════════════════════════════════════════════════════════════════
#  PARSE TREE → RECORDS
# ═══════════════════════════════════════════════════════════════════

@dataclass
class _NodeRec:
    nid: int
    start: int
    end: int


@dataclass
class _SuperGroupRec:
    id: str
    name: str
    description: str
    synthetic: bool
    groups: List[List[_NodeRec]] = field(default_factory=list)
    pos: int = 0


class BBGroupBuilder(NodeVisitor):
    """Transforms the Parsimonious parse tree into SuperGroup records."""

    grammar = BBGROUP_GRAMMAR
    unwrapped_exceptions = (ParseError,)

    def __init__(self, source_name: str = "") -> None:
        self.source_name = source_name

    def generic_visit(self, node, visited_children):
        """Anonymous sequences and quantifiers: a (possibly empty) list."""
        return visited_children

    def visit_file(self, node, visited_children):
        items, _ = visited_children
        return [it for it in items if isinstance(it, _SuperGroupRec)]

    def visit_item(self, node, visited_children):
        return visited_children[0]

    def visit_blank_line(self, node, visited_children):
        return None

    def visit_comment_line(self, node, visited_children):
        return None

    def visit_sg_line(self, node, visited_children):
        (_, sg_id, _, name, _, desc, _, groups,
         flag, _, _) = visited_children
        return _SuperGroupRec(
            id=sg_id,
            name=name,
            description=desc,
            synthetic=bool(flag),
            groups=groups[0] if groups else [],
            pos=node.start,
        )

    def visit_flag(self, node, visited_children):
        return True

    def visit_field(self, node, visited_children):
        return visited_children[0]

    def visit_quoted(self, node, visited_children):
        return _unescape(node.text[1:-1])

    def visit_bare(self, node, visited_children):
        return node.text.strip()

    def visit_groups(self, node, visited_children):
        first, rest = visited_children
        return [first] + [group for _, group in rest]

    def visit_group(self, node, visited_children):
        _, _, first, rest, _, _ = visited_children
        return [first] + [nd for _, _, _, nd in rest]

    def visit_nodedef(self, node, visited_children):
        nid, _, _, _, start, _, _, _, end = visited_children
        if end <= start:
            line, col = _line_col(node.full_text, node.start)
            raise ParseError(
                f"empty address range {start:#x}:{end:#x}",
                line=line, column=col, source_name=self.source_name,
                code=ErrorCode.PARSE_BAD_RANGE,
            )
        return _NodeRec(nid, start, end)

    def visit_number(self, node, visited_children):
        return int(node.text, 0)


# ═══════════════════════════════════════════════════════════════════
#  STRING ESCAPES
# ═══════════════════════════════════════════════════════════════════

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r"}
_ESCAPE_RE = re.compile(r"\\(.)")
_NEEDS_QUOTES_RE = re.compile(r'[;"\\\r\n\t]|^\s|\s$|^#')


def _unescape(text: str) -> str:
    return _ESCAPE_RE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(1)), text)


def _quote_field(text: str) -> str:
    if not _NEEDS_QUOTES_RE.search(text):
        return text
    escaped = (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def _line_col(text: str, pos: int) -> Tuple[int, int]:
    line = text.count("\n", 0, pos) + 1
    col = pos - (text.rfind("\n", 0, pos) + 1) + 1
    return line, col


# ═══════════════════════════════════════════════════════════════════
#  PUBLIC API
# ═══════════════════════════════════════════════════════════════════

def loads(text: str, source_name: str = "") -> GroupManager:
    """Parse definition *text* into a raw (unsanitized) GroupManager.

    Raises :class:`~graphslick.errors.ParseError`; no partial manager is
    ever returned.
    """
    try:
        tree = BBGROUP_GRAMMAR.parse(text)
    except IncompleteParseError as exc:
        line, col = _line_col(text, exc.pos)
        raise ParseError(
            "unexpected text", line=line, column=col, source_name=source_name,
            hint="expected 'id ; name ; description ; (nid:start:end, ...)'",
        ) from exc
    except PegParseError as exc:
        line, col = _line_col(text, exc.pos)
        raise ParseError(
            f"syntax error near {text[exc.pos:exc.pos + 20]!r}",
            line=line, column=col, source_name=source_name,
        ) from exc

    try:
        records = BBGroupBuilder(source_name).visit(tree)
    except VisitationError as exc:
        raise ParseError(
            f"malformed definition: {exc.original_class.__name__}",
            source_name=source_name,
        ) from exc
    gm = GroupManager(source_file=source_name)
    seen = set()
    for rec in records:
        line, col = _line_col(text, rec.pos)
        if not rec.id:
            raise ParseError(
                "empty SuperGroup id", line=line, column=col,
                source_name=source_name, code=ErrorCode.PARSE_EMPTY_ID,
            )
        if rec.id in seen:
            raise ParseError(
                f"duplicate SuperGroup id {rec.id!r}", line=line, column=col,
                source_name=source_name, code=ErrorCode.PARSE_DUPLICATE_ID,
            )
        seen.add(rec.id)
        sg = SuperGroup(
            id=rec.id,
            name=rec.name,
            description=rec.description,
            is_synthetic=rec.synthetic,
        )
        for nodes in rec.groups:
            ng = NodeGroup()
            for nd in nodes:
                ng.append(NodeDef(nd.nid, nd.start, nd.end))
            sg.groups.append(ng)
        gm.add_supergroup(sg)

    logger.debug(
        "Parsed %d supergroup(s) from %s",
        len(gm.supergroups), source_name or "<text>",
    )
    return gm


def load_file(path: Union[str, Path]) -> GroupManager:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError(f"not a text file: {exc}", source_name=str(path)) from exc
    return loads(text, source_name=str(path))


def _format_group(ng: NodeGroup) -> str:
    return "(" + ", ".join(
        f"{nd.nid}:{nd.start:#x}:{nd.end:#x}" for nd in ng
    ) + ")"


def dumps(gm: GroupManager) -> str:
    """Serialise *gm*, including SuperGroups left without node groups."""
    lines: List[str] = []
    for sg in gm.supergroups:
        parts = [
            _quote_field(sg.id),
            _quote_field(sg.name),
            _quote_field(sg.description),
            " ".join(_format_group(ng) for ng in sg.groups),
        ]
        if sg.is_synthetic:
            parts.append(SYNTHETIC_FLAG)
        lines.append(";".join(parts))
    return "\n".join(lines) + ("\n" if lines else "")


def dump_file(gm: GroupManager, path: Union[str, Path]) -> None:
    Path(path).write_text(dumps(gm), encoding="utf-8")


__all__: List[str] = [
    "BBGROUP_GRAMMAR",
    "BBGroupBuilder",
    "loads",
    "load_file",
    "dumps",
    "dump_file",
]
