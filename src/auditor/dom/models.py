# src/auditor/dom/models.py
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from bs4 import Tag
from pydantic import BaseModel, ConfigDict, Field


class LandmarkRole(str, Enum):
    NONE = "none"
    REGION = "region"
    NAVIGATION = "navigation"
    COMPLEMENTARY = "complementary"
    MAIN = "main"
    BANNER = "banner"
    CONTENTINFO = "contentinfo"
    SEARCH = "search"
    FORM = "form"


class EditHints(BaseModel):
    """
    Pass-through editability data attached to an element by the page renderer.
    The engine never validates or interprets these values.
    """
    available_options: Dict[str, Any] = Field(default_factory=dict)
    record_table: str = ""
    record_column: str = ""
    record_uid: str = ""
    edit_link: str = ""

    @property
    def is_editable(self) -> bool:
        return bool(self.record_uid)


class StructureNode(BaseModel):
    """
    Base model for a node in a heading or landmark forest.

    `element` is the originating bs4 Tag. It is kept for rendering and edit
    wiring only and never takes part in serialization.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    element: Optional[Tag] = Field(default=None, exclude=True, repr=False)
    tag: str
    text: str = ""
    sourceline: Optional[int] = None
    sourcepos: Optional[int] = None
    error_reasons: Set[str] = Field(default_factory=set)
    edit: Optional[EditHints] = None


class HeadingNode(StructureNode):
    level: int = Field(ge=1, le=6)
    skipped_levels: int = Field(default=0, ge=0)
    children: List['HeadingNode'] = Field(default_factory=list)

    @property
    def has_error(self) -> bool:
        return self.skipped_levels > 0


class LandmarkNode(StructureNode):
    role: LandmarkRole
    accessible_name: str = ""
    children: List['LandmarkNode'] = Field(default_factory=list)

    @property
    def has_error(self) -> bool:
        return bool(self.error_reasons)


def flatten(nodes: List[StructureNode]) -> List[StructureNode]:
    """Returns the nodes of a forest in pre-order (document order)."""
    result: List[StructureNode] = []
    stack = list(reversed(nodes))
    while stack:
        node = stack.pop()
        result.append(node)
        stack.extend(reversed(node.children))
    return result
