"""
graphslick.groupman
===================

The group model: basic-block references organised into a three-level
hierarchy owned by a :class:`GroupManager`.

::

    GroupManager
    └── SuperGroup        (id, name, description, is_synthetic)
        └── NodeGroup     (rendered as one node in the combined view)
            └── NodeDef   (nid, [start, end) of one basic block)

Life cycle
----------
1. ``GroupManager.parse()`` builds the raw hierarchy from a ``.bbgroup``
   definition.  The hierarchy may be stale with respect to the live CFG.
2. :class:`graphslick.sanitizer.Sanitizer` repairs it against a flowchart and
   marks the manager as sanitized.
3. :meth:`GroupManager.initialize_lookups` builds the reverse indices.
4. :class:`graphslick.combiner.GroupCombiner` is the only mutator from then
   on; it maintains the indices incrementally.

Node groups live in an arena keyed by a per-manager integer ``key``; all
side tables (``nid -> NodeLocation``, ``NodeGroup <-> synthetic id``) are
plain dictionaries over integers, so nothing below the manager holds an
owning back-reference.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import (
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from graphslick.errors import NotFoundError, PreconditionError

_log = logging.getLogger(__name__)

STR_DUMMY_SG_NAME = "No name"


# ---------------------------------------------------------------------------
# NodeDef
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class NodeDef:
    """Leaf reference to one basic block."""

    nid: int
    start: int
    end: int

    @property
    def range(self) -> Tuple[int, int]:
        return (self.start, self.end)

    def overlaps(self, start: int, end: int) -> bool:
        return self.start < end and start < self.end

    def copy(self) -> NodeDef:
        return NodeDef(self.nid, self.start, self.end)

    def __str__(self) -> str:
        return f"{self.nid}:{self.start:#x}:{self.end:#x}"


# ---------------------------------------------------------------------------
# NodeGroup
# ---------------------------------------------------------------------------

class NodeGroup:
    """Ordered NodeDefs rendered as a single node in the combined view.

    ``key`` is the arena slot assigned by the owning manager; ``-1`` means
    the group is not registered with any manager yet.
    """

    __slots__ = ("key", "nodes")

    def __init__(self, nodes: Optional[Iterable[NodeDef]] = None, key: int = -1) -> None:
        self.key = key
        self.nodes: List[NodeDef] = list(nodes) if nodes else []

    def __iter__(self) -> Iterator[NodeDef]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, index: int) -> NodeDef:
        return self.nodes[index]

    def append(self, nd: NodeDef) -> None:
        self.nodes.append(nd)

    def first_node(self) -> Optional[NodeDef]:
        return self.nodes[0] if self.nodes else None

    def ranges(self) -> List[Tuple[int, int]]:
        return [nd.range for nd in self.nodes]

    def nids(self) -> List[int]:
        return [nd.nid for nd in self.nodes]

    def __repr__(self) -> str:
        inner = ", ".join(str(nd) for nd in self.nodes)
        return f"NodeGroup(key={self.key}, [{inner}])"


# ---------------------------------------------------------------------------
# SuperGroup
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class SuperGroup:
    """A named collection of node groups (one path / strategy)."""

    id: str
    name: str = ""
    description: str = ""
    is_synthetic: bool = False
    groups: List[NodeGroup] = field(default_factory=list)

    def get_display_name(self, default: str = STR_DUMMY_SG_NAME) -> str:
        return self.name if self.name else default

    def gcount(self) -> int:
        return len(self.groups)

    def first_group(self) -> Optional[NodeGroup]:
        return self.groups[0] if self.groups else None

    def is_empty(self) -> bool:
        return not self.groups

    def copy(self) -> SuperGroup:
        """Deep copy: new NodeGroups (unregistered) and new NodeDefs."""
        return SuperGroup(
            id=self.id,
            name=self.name,
            description=self.description,
            is_synthetic=self.is_synthetic,
            groups=[NodeGroup(nd.copy() for nd in ng) for ng in self.groups],
        )

    def __repr__(self) -> str:
        return (
            f"SuperGroup(id={self.id!r}, name={self.name!r}, "
            f"groups={len(self.groups)}, synthetic={self.is_synthetic})"
        )


@dataclass(frozen=True)
class NodeLocation:
    """Where a NodeDef lives: its SuperGroup and NodeGroup (borrowed)."""

    sg: SuperGroup
    ng: NodeGroup


# ---------------------------------------------------------------------------
# GroupManager
# ---------------------------------------------------------------------------

class GroupManager:
    """Owns the SuperGroup hierarchy of one definition file."""

    def __init__(self, source_file: str = "") -> None:
        self.source_file = source_file
        self.supergroups: List[SuperGroup] = []
        self._groups: Dict[int, NodeGroup] = {}
        self._next_key = 0
        self._sanitized = False
        self._lookups_ready = False
        self._nid_loc: Dict[int, NodeLocation] = {}
        self._ng_to_gid: Dict[int, int] = {}
        self._gid_to_ng: Dict[int, NodeGroup] = {}
        self._next_gid = 0

    # ----- construction -----------------------------------------------------

    @classmethod
    def parse(cls, source: str, source_name: str = "") -> GroupManager:
        """Build the raw (unsanitized) hierarchy from definition text.

        Raises :class:`~graphslick.errors.ParseError`.
        """
        from graphslick import bbgroup

        return bbgroup.loads(source, source_name=source_name)

    @classmethod
    def parse_file(cls, path: Union[str, Path]) -> GroupManager:
        from graphslick import bbgroup

        return bbgroup.load_file(path)

    def new_group(self, nodes: Optional[Iterable[NodeDef]] = None) -> NodeGroup:
        """Create a NodeGroup registered in this manager's arena."""
        ng = NodeGroup(nodes)
        self._register(ng)
        return ng

    def add_supergroup(self, sg: SuperGroup) -> SuperGroup:
        for ng in sg.groups:
            self._register(ng)
        self.supergroups.append(sg)
        self._lookups_ready = False
        return sg

    def _register(self, ng: NodeGroup) -> None:
        if ng.key >= 0 and self._groups.get(ng.key) is ng:
            return
        ng.key = self._next_key
        self._next_key += 1
        self._groups[ng.key] = ng

    def replace_hierarchy(self, supergroups: List[SuperGroup], sanitized: bool) -> None:
        """Swap in a whole new hierarchy (used by the sanitizer's commit)."""
        self.supergroups = []
        self._groups.clear()
        self._next_key = 0
        for sg in supergroups:
            self.add_supergroup(sg)
        self._sanitized = sanitized
        self._drop_lookups()

    def _drop_lookups(self) -> None:
        self._lookups_ready = False
        self._nid_loc.clear()
        self.reset_group_ids()

    # ----- state ------------------------------------------------------------

    @property
    def is_sanitized(self) -> bool:
        return self._sanitized

    @property
    def lookups_ready(self) -> bool:
        return self._lookups_ready

    def _require_lookups(self) -> None:
        if not self._lookups_ready:
            raise PreconditionError(
                "group lookups queried before initialize_lookups()"
            )

    # ----- iteration --------------------------------------------------------

    def __len__(self) -> int:
        return len(self.supergroups)

    def __iter__(self) -> Iterator[SuperGroup]:
        return iter(self.supergroups)

    def iter_groups(self) -> Iterator[Tuple[SuperGroup, NodeGroup]]:
        for sg in self.supergroups:
            for ng in sg.groups:
                yield sg, ng

    def node_defs(self) -> Iterator[NodeDef]:
        for _, ng in self.iter_groups():
            yield from ng

    def group_count(self) -> int:
        return sum(sg.gcount() for sg in self.supergroups)

    def first_node_def(self) -> Optional[NodeDef]:
        """Return the first NodeDef in model order, or ``None``."""
        return next(self.node_defs(), None)

    def supergroup(self, sg_id: str) -> SuperGroup:
        for sg in self.supergroups:
            if sg.id == sg_id:
                return sg
        raise NotFoundError(f"no SuperGroup with id {sg_id!r}")

    def has_supergroup(self, sg_id: str) -> bool:
        return any(sg.id == sg_id for sg in self.supergroups)

    def supergroup_of(self, ng: NodeGroup) -> SuperGroup:
        for sg in self.supergroups:
            if any(g is ng for g in sg.groups):
                return sg
        raise NotFoundError(f"{ng!r} does not belong to this manager")

    def contains_group(self, ng: NodeGroup) -> bool:
        return ng.key >= 0 and self._groups.get(ng.key) is ng

    def find_supergroups(self, pattern: str) -> List[SuperGroup]:
        """SuperGroups whose name or id contains *pattern* (case-insensitive)."""
        needle = pattern.lower()
        return [
            sg for sg in self.supergroups
            if needle in sg.name.lower() or needle in sg.id.lower()
        ]

    # ----- lookups ----------------------------------------------------------

    def initialize_lookups(self) -> None:
        """Build the ``nid -> NodeLocation`` index and reset the synthetic
        id index.  Only valid on a sanitized manager."""
        if not self._sanitized:
            raise PreconditionError(
                "initialize_lookups() called before sanitization"
            )
        nid_loc: Dict[int, NodeLocation] = {}
        for sg, ng in self.iter_groups():
            if not ng.nodes:
                raise PreconditionError(f"empty node group in {sg.id!r}")
            for nd in ng:
                if nd.nid in nid_loc:
                    raise PreconditionError(f"duplicate node id {nd.nid}")
                nid_loc[nd.nid] = NodeLocation(sg, ng)
        self._nid_loc = nid_loc
        self.reset_group_ids()
        self._lookups_ready = True
        _log.debug(
            "Initialized lookups: %d node(s), %d group(s), %d supergroup(s)",
            len(nid_loc), self.group_count(), len(self.supergroups),
        )

    def find_node_location(self, nid: int) -> NodeLocation:
        self._require_lookups()
        try:
            return self._nid_loc[nid]
        except KeyError:
            raise NotFoundError(f"no node with id {nid}") from None

    def node_def(self, nid: int) -> NodeDef:
        loc = self.find_node_location(nid)
        for nd in loc.ng:
            if nd.nid == nid:
                return nd
        raise PreconditionError(f"stale location for node id {nid}")

    def node_ids(self) -> List[int]:
        self._require_lookups()
        return sorted(self._nid_loc)

    # ----- NodeGroup <-> synthetic id ---------------------------------------

    def reset_group_ids(self) -> None:
        self._ng_to_gid.clear()
        self._gid_to_ng.clear()
        self._next_gid = 0

    def group_id(self, ng: NodeGroup) -> Optional[int]:
        return self._ng_to_gid.get(ng.key)

    def assign_group_id(self, ng: NodeGroup) -> int:
        """Return *ng*'s synthetic id, assigning the next one if needed."""
        self._require_lookups()
        gid = self._ng_to_gid.get(ng.key)
        if gid is None:
            if not self.contains_group(ng):
                raise NotFoundError(f"{ng!r} does not belong to this manager")
            gid = self._next_gid
            self._next_gid += 1
            self._ng_to_gid[ng.key] = gid
            self._gid_to_ng[gid] = ng
        return gid

    def group_from_id(self, gid: int) -> NodeGroup:
        try:
            return self._gid_to_ng[gid]
        except KeyError:
            raise NotFoundError(f"no node group with id {gid}") from None

    def group_ids(self) -> Dict[int, NodeGroup]:
        return dict(self._gid_to_ng)

    # ----- incremental maintenance ------------------------------------------

    def replace_groups(
        self,
        removed: Sequence[NodeGroup],
        new_group: NodeGroup,
        sg: SuperGroup,
        index: int,
    ) -> None:
        """Remove *removed* from their SuperGroups and insert *new_group* in
        *sg* at *index*, updating every index for the affected entries only.

        *index* refers to *sg.groups* after the removal.
        """
        self._require_lookups()
        for ng in removed:
            owner = self._nid_loc[ng.nodes[0].nid].sg
            owner.groups = [g for g in owner.groups if g is not ng]
            del self._groups[ng.key]
            gid = self._ng_to_gid.pop(ng.key, None)
            if gid is not None:
                del self._gid_to_ng[gid]
        self._register(new_group)
        sg.groups.insert(index, new_group)
        loc = NodeLocation(sg, new_group)
        for nd in new_group:
            self._nid_loc[nd.nid] = loc
        # Once ids are handed out, the new group's id follows every
        # surviving group's id; otherwise the next combined build numbers it.
        if self._gid_to_ng:
            self.assign_group_id(new_group)

    # ----- persistence ------------------------------------------------------

    def dumps(self) -> str:
        from graphslick import bbgroup

        return bbgroup.dumps(self)

    def save(self, path: Union[str, Path, None] = None) -> Path:
        from graphslick import bbgroup

        target = Path(path) if path is not None else Path(self.source_file)
        bbgroup.dump_file(self, target)
        return target

    def snapshot(self) -> List[tuple]:
        """Structural value of the hierarchy, for comparisons."""
        return [
            (
                sg.id, sg.name, sg.description, sg.is_synthetic,
                [[(nd.nid, nd.start, nd.end) for nd in ng] for ng in sg.groups],
            )
            for sg in self.supergroups
        ]

    def __repr__(self) -> str:
        return (
            f"GroupManager({self.source_file!r}, supergroups="
            f"{len(self.supergroups)}, sanitized={self._sanitized})"
        )
