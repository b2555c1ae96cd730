"""
graphslick.combiner
===================

Merges several NodeGroups of a sanitized, indexed
:class:`~graphslick.groupman.GroupManager` into one.

The NodeDefs of the merged groups are concatenated in a deterministic
order: groups sorted by the start address of their first NodeDef, ties
broken by synthetic id (discovery order), then by model order.  The new
group replaces the first ordered group inside that group's SuperGroup.
SuperGroups left without groups stay in the model.

All checks run before the model is touched; a rejected request leaves the
manager exactly as it was.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, List, Tuple

from graphslick.errors import InsufficientSelectionError, NotFoundError
from graphslick.groupman import GroupManager, NodeDef, NodeGroup

_log = logging.getLogger(__name__)


class GroupCombiner:

    def __init__(self, gm: GroupManager) -> None:
        self.gm = gm

    def combine(self, selected: Iterable[NodeGroup]) -> NodeGroup:
        """Merge *selected* into a single NodeGroup and return it.

        Raises :class:`InsufficientSelectionError` for fewer than two
        distinct groups and :class:`NotFoundError` for a group the manager
        does not own.
        """
        gm = self.gm
        groups: List[NodeGroup] = []
        seen = set()
        for ng in selected:
            if id(ng) in seen:
                continue
            seen.add(id(ng))
            groups.append(ng)

        if len(groups) < 2:
            raise InsufficientSelectionError(
                f"combining needs at least two node groups, got {len(groups)}",
                hint="select more nodes",
            )
        for ng in groups:
            if not gm.contains_group(ng) or not ng.nodes:
                raise NotFoundError(f"{ng!r} does not belong to this manager")

        ordered = sorted(groups, key=self._sort_key(groups))
        first = ordered[0]
        target = gm.find_node_location(first.nodes[0].nid).sg

        nodes: List[NodeDef] = [nd for ng in ordered for nd in ng]
        new_group = NodeGroup(nodes)

        # Position of `first` once the merged groups have been taken out.
        index = 0
        for g in target.groups:
            if g is first:
                break
            if not any(g is r for r in ordered):
                index += 1

        gm.replace_groups(ordered, new_group, target, index)
        _log.info(
            "Combined %d group(s) into %r of %r", len(ordered), new_group, target.id
        )
        return new_group

    def _sort_key(self, groups: List[NodeGroup]):
        model_pos: Dict[int, int] = {}
        for pos, (_, ng) in enumerate(self.gm.iter_groups()):
            model_pos[ng.key] = pos

        def key(ng: NodeGroup) -> Tuple[int, float, int]:
            gid = self.gm.group_id(ng)
            return (
                ng.nodes[0].start,
                gid if gid is not None else math.inf,
                model_pos.get(ng.key, len(model_pos)),
            )

        return key


def combine(gm: GroupManager, selected: Iterable[NodeGroup]) -> NodeGroup:
    """Shorthand for ``GroupCombiner(gm).combine(selected)``."""
    return GroupCombiner(gm).combine(selected)
