from typing import List, Optional

from bs4 import Tag

from ..classifier import DEFAULT_DATA_PREFIX, classify_heading, read_edit_hints
from ..core import AuditResult, ElementDefinition, Severity, audit_spec
from ..models import HeadingNode


def parse_heading(
        tag: Tag,
        level: int,
        document: Optional[Tag] = None,
        data_prefix: str = DEFAULT_DATA_PREFIX
) -> HeadingNode:
    """
    Creates a fresh HeadingNode for a classified heading tag.
    skipped_levels and children are filled in by the tree builder.
    """
    return HeadingNode(
        element=tag,
        tag=tag.name,
        text=tag.get_text(" ", strip=True),
        sourceline=tag.sourceline,
        sourcepos=tag.sourcepos,
        level=level,
        edit=read_edit_hints(tag, "available-levels", data_prefix),
    )


# --- AUDIT RULES ---
# Every rule receives the flattened heading forest in document order.


@audit_spec(codes=["missing-h1"])
def check_h1_present(nodes: List[HeadingNode]) -> List[AuditResult]:
    """Rule: A document needs an H1. Reported once, regardless of heading count."""
    if any(node.level == 1 for node in nodes):
        return []
    return [("missing-h1", Severity.ERROR, [])]


@audit_spec(codes=["multiple-h1"])
def check_single_h1(nodes: List[HeadingNode]) -> List[AuditResult]:
    """Rule: More than one H1 is flagged on every H1."""
    h1_nodes = [node for node in nodes if node.level == 1]
    if len(h1_nodes) > 1:
        return [("multiple-h1", Severity.WARNING, h1_nodes)]
    return []


@audit_spec(codes=["empty-heading"])
def check_heading_not_empty(nodes: List[HeadingNode]) -> List[AuditResult]:
    """Rule: Headings must have text content."""
    empty = [node for node in nodes if not node.text]
    if empty:
        return [("empty-heading", Severity.ERROR, empty)]
    return []


@audit_spec(codes=["skipped-level"])
def check_skipped_levels(nodes: List[HeadingNode]) -> List[AuditResult]:
    """
    Rule: Heading levels must not be skipped.
    Counts the headings that skip, not the number of levels skipped.
    """
    skipping = [node for node in nodes if node.skipped_levels > 0]
    if skipping:
        return [("skipped-level", Severity.ERROR, skipping)]
    return []


# --- ELEMENT DEFINITION ---

DEFINITION = ElementDefinition(
    category="headings",
    classifier=classify_heading,
    parser=parse_heading,
    audit_rules=[check_h1_present, check_single_h1, check_heading_not_empty, check_skipped_levels]
)
