"""
graphslick.sanitizer
====================

Reconciles a loaded :class:`~graphslick.groupman.GroupManager` with the live
flowchart of its function.

A definition file may have been written against an older analysis of the
function: blocks may have moved, been split or merged, or been introduced
by the compiler without ever being mentioned in the file.  Sanitization
makes the grouping *total* (every live block appears in exactly one
NodeDef of exactly one NodeGroup) and *idempotent* (a second run against
the same flowchart changes nothing and reports nothing).

Algorithm
---------
1. Index the live block ranges.
2. Claim exact matches over the whole model: a NodeDef whose range is a
   live block nobody claimed yet is kept, wherever it sits in the file.
3. Walk the remaining NodeDefs in model order:

   * replaced by one NodeDef per unclaimed block it overlaps (``SPLIT``);
   * no unclaimed overlap -> removed (``DROPPED``, stale or duplicate).
     Node groups left empty are removed; SuperGroups are kept.

4. Every block still unclaimed is wrapped in its own synthetic SuperGroup
   holding one NodeGroup (``SYNTHESIZED``).
5. Node ids are reassigned ``0..n-1`` by ascending start address.

The computation runs on a copy of the hierarchy and is committed in one
step, so the manager is either fully updated or left untouched.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Tuple

from graphslick.errors import EmptyCfgError
from graphslick.flowchart import BasicBlock, FlowChart
from graphslick.groupman import GroupManager, NodeDef, NodeGroup, SuperGroup

_log = logging.getLogger(__name__)

SYNTHETIC_PREFIX = "syn_"


class ActionKind(enum.Enum):
    """What the sanitizer did to one NodeDef or block."""

    SPLIT = "split"
    DROPPED = "dropped"
    SYNTHESIZED = "synthesized"


@dataclass(frozen=True)
class SanitizeAction:
    """One informational finding of a sanitizer run."""

    kind: ActionKind
    sg_id: str
    start: int
    end: int
    message: str
    pieces: Tuple[Tuple[int, int], ...] = ()

    def __str__(self) -> str:
        return f"{self.kind.value}: [{self.sg_id}] {self.message}"


@dataclass
class SanitizeReport:
    """Diagnostics of one run; empty when the model was already clean."""

    actions: List[SanitizeAction] = field(default_factory=list)

    def __iter__(self) -> Iterator[SanitizeAction]:
        return iter(self.actions)

    def __len__(self) -> int:
        return len(self.actions)

    def __bool__(self) -> bool:
        return bool(self.actions)

    def of_kind(self, kind: ActionKind) -> List[SanitizeAction]:
        return [a for a in self.actions if a.kind is kind]

    def counts(self) -> Dict[str, int]:
        out = {k.value: 0 for k in ActionKind}
        for a in self.actions:
            out[a.kind.value] += 1
        return out

    def summary(self) -> str:
        c = self.counts()
        return (
            f"{c['split']} split, {c['dropped']} dropped, "
            f"{c['synthesized']} synthesized"
        )


class Sanitizer:
    """Runs the reconciliation; holds no state between runs."""

    def run(self, gm: GroupManager, flowchart: FlowChart) -> SanitizeReport:
        """Make *gm* consistent with *flowchart*.

        Raises :class:`~graphslick.errors.EmptyCfgError` (leaving *gm*
        untouched) when the flowchart has no blocks.
        """
        if flowchart.is_empty():
            raise EmptyCfgError(f"flowchart {flowchart.title!r} has no blocks")

        report = SanitizeReport()
        live = flowchart.sorted_blocks()
        claimed: Set[Tuple[int, int]] = set()

        supergroups = [sg.copy() for sg in gm.supergroups]
        exact = self._claim_exact(supergroups, live, claimed)
        for sg in supergroups:
            sg.groups = self._sanitize_groups(sg, live, claimed, exact, report)

        taken_ids = {sg.id for sg in supergroups}
        for block in live:
            if block.range in claimed:
                continue
            sg = self._synthesize(block, taken_ids)
            supergroups.append(sg)
            claimed.add(block.range)
            report.actions.append(
                SanitizeAction(
                    ActionKind.SYNTHESIZED, sg.id, block.start, block.end,
                    f"uncovered block {block.start:#x}-{block.end:#x} "
                    f"wrapped in synthetic group",
                )
            )

        self._renumber(supergroups)
        gm.replace_hierarchy(supergroups, sanitized=True)

        for action in report:
            if action.kind is ActionKind.DROPPED:
                _log.warning("%s", action)
            else:
                _log.info("%s", action)
        if report:
            _log.info("Sanitized %s: %s", gm.source_file or "<groups>", report.summary())
        return report

    # ----- steps ------------------------------------------------------------

    @staticmethod
    def _claim_exact(
        supergroups: List[SuperGroup],
        live: List[BasicBlock],
        claimed: Set[Tuple[int, int]],
    ) -> Set[int]:
        """Claim every exactly matching block; returns the ``id()`` of the
        NodeDefs kept this way."""
        kept: Set[int] = set()
        for sg in supergroups:
            for ng in sg.groups:
                for nd in ng:
                    block = _find_exact(live, nd.start, nd.end)
                    if block is not None and block.range not in claimed:
                        claimed.add(block.range)
                        kept.add(id(nd))
        return kept

    def _sanitize_groups(
        self,
        sg: SuperGroup,
        live: List[BasicBlock],
        claimed: Set[Tuple[int, int]],
        exact: Set[int],
        report: SanitizeReport,
    ) -> List[NodeGroup]:
        groups: List[NodeGroup] = []
        for ng in sg.groups:
            nodes: List[NodeDef] = []
            for nd in ng:
                if id(nd) in exact:
                    nodes.append(nd)
                else:
                    nodes.extend(self._resolve(sg, nd, live, claimed, report))
            if nodes:
                groups.append(NodeGroup(nodes))
        return groups

    def _resolve(
        self,
        sg: SuperGroup,
        nd: NodeDef,
        live: List[BasicBlock],
        claimed: Set[Tuple[int, int]],
        report: SanitizeReport,
    ) -> List[NodeDef]:
        overlapping = [b for b in live if b.overlaps(nd.start, nd.end)]
        pieces = [b for b in overlapping if b.range not in claimed]
        if not pieces:
            reason = "duplicate" if overlapping else "stale"
            report.actions.append(
                SanitizeAction(
                    ActionKind.DROPPED, sg.id, nd.start, nd.end,
                    f"{reason} node {nd.start:#x}-{nd.end:#x} removed",
                )
            )
            return []

        for b in pieces:
            claimed.add(b.range)
        report.actions.append(
            SanitizeAction(
                ActionKind.SPLIT, sg.id, nd.start, nd.end,
                f"node {nd.start:#x}-{nd.end:#x} mapped onto "
                + ", ".join(f"{b.start:#x}-{b.end:#x}" for b in pieces),
                pieces=tuple(b.range for b in pieces),
            )
        )
        return [NodeDef(nd.nid, b.start, b.end) for b in pieces]

    @staticmethod
    def _synthesize(block: BasicBlock, taken_ids: Set[str]) -> SuperGroup:
        base = f"{SYNTHETIC_PREFIX}{block.start:x}"
        sg_id = base
        n = 2
        while sg_id in taken_ids:
            sg_id = f"{base}_{n}"
            n += 1
        taken_ids.add(sg_id)
        return SuperGroup(
            id=sg_id,
            name=sg_id,
            is_synthetic=True,
            groups=[NodeGroup([NodeDef(-1, block.start, block.end)])],
        )

    @staticmethod
    def _renumber(supergroups: List[SuperGroup]) -> None:
        nodes = [nd for sg in supergroups for ng in sg.groups for nd in ng]
        nodes.sort(key=lambda nd: (nd.start, nd.end))
        for nid, nd in enumerate(nodes):
            nd.nid = nid


def _find_exact(live: List[BasicBlock], start: int, end: int) -> Optional[BasicBlock]:
    for b in live:
        if b.start == start and b.end == end:
            return b
        if b.start > start:
            break
    return None


def sanitize(gm: GroupManager, flowchart: FlowChart) -> SanitizeReport:
    """Shorthand for ``Sanitizer().run(gm, flowchart)``."""
    return Sanitizer().run(gm, flowchart)
