"""
graphslick.options
==================

User options of a GraphSlick session, persisted as a small JSON file.
"""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

_log = logging.getLogger(__name__)


class ViewMode(enum.Enum):
    """The two graph projections."""

    FLAT = "flat"            # one node per basic block
    COMBINED = "combined"    # one node per NodeGroup

    @classmethod
    def from_string(cls, s: str) -> ViewMode:
        s_low = s.strip().lower()
        aliases = {"single": cls.FLAT, "ungrouped": cls.FLAT, "grouped": cls.COMBINED}
        if s_low in aliases:
            return aliases[s_low]
        return cls(s_low)


@dataclass
class GraphSlickOptions:
    """Tuning knobs for the graph view."""

    # Append the node id to the node text
    append_node_id: bool = False
    # Only refresh the view when asked to (selection/highlight are lazy)
    manual_refresh_mode: bool = True
    # Highlight synthetic SuperGroups when highlighting everything
    highlight_synthetic_nodes: bool = False
    show_options_dialog_next_time: bool = True
    # Pad one-line group names so combined nodes look bigger
    enlarge_group_name: bool = True
    debug: bool = False
    start_view_mode: ViewMode = ViewMode.COMBINED

    def validate(self) -> List[str]:
        """Return a list of validation warnings (empty if valid)."""
        warnings: List[str] = []
        if not isinstance(self.start_view_mode, ViewMode):
            warnings.append("start_view_mode must be a ViewMode")
        for f in fields(self):
            if f.name == "start_view_mode":
                continue
            if not isinstance(getattr(self, f.name), bool):
                warnings.append(f"{f.name} must be a boolean")
        return warnings

    # ----- (de)serialisation ------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["start_view_mode"] = self.start_view_mode.value
        return d

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GraphSlickOptions:
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                _log.warning("Ignoring unknown option %r", key)
                continue
            if key == "start_view_mode":
                value = ViewMode.from_string(str(value))
            kwargs[key] = value
        opts = cls(**kwargs)
        for w in opts.validate():
            _log.warning("Option problem: %s", w)
        return opts

    @classmethod
    def load(cls, path: Union[str, Path]) -> GraphSlickOptions:
        """Load options from *path*; defaults when the file does not exist."""
        p = Path(path)
        if not p.exists():
            _log.debug("No options file at %s, using defaults", p)
            return cls()
        return cls.from_dict(json.loads(p.read_text(encoding="utf-8")))

    def save(self, path: Union[str, Path]) -> None:
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(self.to_dict(), indent=2) + "\n", encoding="utf-8")
