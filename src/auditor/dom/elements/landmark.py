from collections import defaultdict
from typing import Dict, List, Optional

from bs4 import Tag

from ..classifier import DEFAULT_DATA_PREFIX, accessible_name, classify_landmark, read_edit_hints
from ..core import AuditResult, ElementDefinition, Severity, audit_spec
from ..models import LandmarkNode, LandmarkRole


def parse_landmark(
        tag: Tag,
        role: LandmarkRole,
        document: Optional[Tag] = None,
        data_prefix: str = DEFAULT_DATA_PREFIX
) -> LandmarkNode:
    """Creates a fresh LandmarkNode with its resolved accessible name."""
    return LandmarkNode(
        element=tag,
        tag=tag.name,
        sourceline=tag.sourceline,
        sourcepos=tag.sourcepos,
        role=role,
        accessible_name=accessible_name(tag, document),
        edit=read_edit_hints(tag, "available-roles", data_prefix),
    )


# --- AUDIT RULES ---
# Rules only look at role and accessible name; nesting does not matter.


def _main_nodes(nodes: List[LandmarkNode]) -> List[LandmarkNode]:
    return [node for node in nodes if node.role == LandmarkRole.MAIN]


@audit_spec(codes=["missing-main"])
def check_main_present(nodes: List[LandmarkNode]) -> List[AuditResult]:
    """Rule: A document needs a main landmark."""
    if _main_nodes(nodes):
        return []
    return [("missing-main", Severity.ERROR, [])]


@audit_spec(codes=["duplicate-main"])
def check_single_main(nodes: List[LandmarkNode]) -> List[AuditResult]:
    """Rule: At most one main landmark. All of them count, not just the excess."""
    mains = _main_nodes(nodes)
    if len(mains) > 1:
        return [("duplicate-main", Severity.ERROR, mains)]
    return []


@audit_spec(codes=["duplicate-same-label"])
def check_label_uniqueness(nodes: List[LandmarkNode]) -> List[AuditResult]:
    """
    Rule: Landmarks sharing a non-empty accessible name are ambiguous,
    whatever their roles. Every group adds to the same diagnostic.
    """
    groups: Dict[str, List[LandmarkNode]] = defaultdict(list)
    for node in nodes:
        if node.accessible_name:
            groups[node.accessible_name].append(node)

    return [
        ("duplicate-same-label", Severity.ERROR, group)
        for group in groups.values()
        if len(group) >= 2
    ]


@audit_spec(codes=["multiple-unlabeled-same-role"])
def check_unlabeled_role_groups(nodes: List[LandmarkNode]) -> List[AuditResult]:
    """
    Rule: Several landmarks of the same role need names to tell them apart.
    main is covered by check_single_main.
    """
    groups: Dict[LandmarkRole, List[LandmarkNode]] = defaultdict(list)
    for node in nodes:
        groups[node.role].append(node)

    results: List[AuditResult] = []
    for role, group in groups.items():
        if role == LandmarkRole.MAIN or len(group) < 2:
            continue
        unlabeled = [node for node in group if not node.accessible_name]
        if len(unlabeled) >= 2:
            results.append(("multiple-unlabeled-same-role", Severity.WARNING, unlabeled))
    return results


# --- ELEMENT DEFINITION ---

DEFINITION = ElementDefinition(
    category="landmarks",
    classifier=classify_landmark,
    parser=parse_landmark,
    audit_rules=[check_main_present, check_single_main, check_label_uniqueness, check_unlabeled_role_groups]
)
