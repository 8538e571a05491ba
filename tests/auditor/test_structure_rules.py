# tests/auditor/test_structure_rules.py
from typing import Optional

import pytest
from pydantic import ValidationError

from auditor.controllers.analysis_controller import analyze_markup
from auditor.dom.classifier import classify_heading
from auditor.dom.core import Severity
from auditor.dom.elements.heading import check_h1_present, parse_heading
from auditor.dom.models import LandmarkNode, flatten
from auditor.dom.registry import DOMRegistry
from auditor.managers.diagnostic_manager import DiagnosticManager
from auditor.model import AnalysisResult, Diagnostic


def _headings(html: str) -> AnalysisResult:
    headings, _ = analyze_markup(html, landmarks=False)
    return headings


def _landmarks(html: str) -> AnalysisResult:
    _, landmarks = analyze_markup(html, headings=False)
    return landmarks


def _diag(result: AnalysisResult, code: str) -> Optional[Diagnostic]:
    matches = [d for d in result.diagnostics if d.code == code]
    assert len(matches) <= 1, f"duplicate diagnostic entries for {code}"
    return matches[0] if matches else None


def _assert_unique_keys(result: AnalysisResult):
    keys = [(d.title_key, d.description_key) for d in result.diagnostics]
    assert len(keys) == len(set(keys))


# --- Registry ---

def test_registry_knows_both_structures():
    DOMRegistry.discover()
    assert DOMRegistry.get_categories() == ["headings", "landmarks"]
    assert set(DOMRegistry.get_all_possible_codes()) == {
        "missing-h1", "multiple-h1", "empty-heading", "skipped-level",
        "missing-main", "duplicate-main", "duplicate-same-label", "multiple-unlabeled-same-role",
    }


def test_heading_definition_binds_classifier_parser_and_rules():
    defn = DOMRegistry.get_definition("headings")
    assert defn.classifier is classify_heading
    assert defn.parser is parse_heading
    assert defn.audit_rules[0] is check_h1_present
    assert "missing-h1" in defn.codes


# --- Heading rules ---

def test_missing_h1_reported_once_regardless_of_heading_count():
    result = _headings("<h2>A</h2><h3>B</h3><h2>C</h2><h4>D</h4><h5>E</h5>")

    missing = _diag(result, "missing-h1")
    assert missing.count == 1
    assert missing.severity == Severity.ERROR
    assert missing.title_key == "structure.headings.error.missing-h1"
    assert missing.description_key == "structure.headings.error.missing-h1.description"


@pytest.mark.parametrize("levels", [
    [1, 2, 3, 2],
    [2, 4],
    [1, 3, 5, 2, 6],
    [3, 3, 3],
    [1, 1, 2, 4, 4],
    [6],
])
def test_skipped_level_count_equals_number_of_skipping_nodes(levels):
    html = "".join(f"<h{level}>t{i}</h{level}>" for i, level in enumerate(levels))
    result = _headings(html)

    nodes = flatten(result.tree)
    skipping = [node for node in nodes if node.skipped_levels > 0]
    diagnostic = _diag(result, "skipped-level")

    if skipping:
        assert diagnostic.count == len(skipping)
    else:
        assert diagnostic is None
    for node in nodes:
        assert node.has_error == (node.skipped_levels > 0)
        assert ("skipped-level" in node.error_reasons) == (node.skipped_levels > 0)
    _assert_unique_keys(result)


def test_skipped_level_counts_nodes_not_magnitudes():
    result = _headings("<h1>A</h1><h6>B</h6>")
    assert result.tree[0].children[0].skipped_levels == 4
    assert _diag(result, "skipped-level").count == 1


def test_multiple_h1_is_a_warning_on_every_h1():
    result = _headings("<h1>A</h1><h2>B</h2><h1>C</h1><h1>D</h1>")

    multiple = _diag(result, "multiple-h1")
    assert multiple.severity == Severity.WARNING
    assert multiple.count == 3
    assert _diag(result, "missing-h1") is None
    assert all("multiple-h1" in node.error_reasons for node in result.tree)


def test_empty_headings_are_errors():
    result = _headings("<h1>Title</h1><h2>   </h2><h2><img src='x.png' alt=''></h2><h2>Ok</h2>")

    empty = _diag(result, "empty-heading")
    assert empty.count == 2
    assert empty.severity == Severity.ERROR
    assert [bool(node.error_reasons) for node in flatten(result.tree)] == [False, True, True, False]


def test_well_formed_outline_has_no_diagnostics():
    result = _headings("<h1>A</h1><h2>B</h2><h3>C</h3><h2>D</h2>")
    assert result.diagnostics == []
    assert result.issue_count == 0


def test_document_without_headings_reports_missing_h1():
    result = _headings("<p>Just text</p>")
    assert result.tree == []
    assert [(d.code, d.count) for d in result.diagnostics] == [("missing-h1", 1)]


# --- Landmark rules ---

def test_single_main_triggers_neither_main_rule():
    result = _landmarks("<header></header><main></main><footer></footer>")
    assert _diag(result, "missing-main") is None
    assert _diag(result, "duplicate-main") is None
    assert result.diagnostics == []


def test_missing_main():
    result = _landmarks('<nav aria-label="Primary"></nav>')
    missing = _diag(result, "missing-main")
    assert missing.count == 1
    assert missing.title_key == "structure.landmarks.error.missing-main"


def test_duplicate_main_counts_every_main():
    result = _landmarks('<main></main><div role="main"></div><main></main>')

    duplicate = _diag(result, "duplicate-main")
    assert duplicate.count == 3
    assert _diag(result, "missing-main") is None
    assert _diag(result, "multiple-unlabeled-same-role") is None
    assert all("duplicate-main" in node.error_reasons for node in result.tree)


def test_duplicate_label_accumulates_in_one_entry():
    two = '<main></main><nav aria-label="Menu"></nav><aside aria-label="Menu"></aside>'
    result = _landmarks(two)
    assert _diag(result, "duplicate-same-label").count == 2

    three = two + '<section aria-label="Menu"></section>'
    result = _landmarks(three)
    assert _diag(result, "duplicate-same-label").count == 3
    _assert_unique_keys(result)


def test_duplicate_label_groups_fold_into_one_diagnostic():
    html = (
        '<main></main>'
        '<nav aria-label="A"></nav><nav aria-label="A"></nav>'
        '<aside aria-label="B"></aside><form aria-label="B"></form>'
        '<aside aria-label="C"></aside>'
    )
    result = _landmarks(html)

    assert _diag(result, "duplicate-same-label").count == 4
    labelled_c = [n for n in flatten(result.tree) if n.accessible_name == "C"]
    assert labelled_c[0].error_reasons == set()


def test_two_unlabeled_navigations_warn():
    result = _landmarks("<main></main><nav></nav><nav></nav>")

    unlabeled = _diag(result, "multiple-unlabeled-same-role")
    assert unlabeled.count == 2
    assert unlabeled.severity == Severity.WARNING


def test_single_navigation_never_warns():
    result = _landmarks("<main></main><nav></nav>")
    assert _diag(result, "multiple-unlabeled-same-role") is None


def test_unlabeled_members_are_counted_across_role_groups():
    html = (
        '<main></main>'
        '<nav></nav><nav aria-label="Footer"></nav><nav></nav>'
        '<aside></aside><aside></aside>'
        '<form></form><form aria-label="Search"></form>'
    )
    result = _landmarks(html)

    assert _diag(result, "multiple-unlabeled-same-role").count == 4
    tagged = [n for n in flatten(result.tree) if "multiple-unlabeled-same-role" in n.error_reasons]
    assert all(not n.accessible_name for n in tagged)


def test_landmark_with_several_problems_collects_all_reasons():
    result = _landmarks('<main aria-label="X"></main><main aria-label="X"></main>')
    for node in result.tree:
        assert isinstance(node, LandmarkNode)
        assert node.error_reasons == {"duplicate-main", "duplicate-same-label"}
        assert node.has_error


def test_document_without_landmarks_reports_missing_main():
    result = _landmarks("<div><p>Nothing</p></div>")
    assert result.tree == []
    assert [(d.code, d.count) for d in result.diagnostics] == [("missing-main", 1)]


# --- Whole document ---

def test_analysis_is_idempotent_on_identical_markup():
    html = (
        '<header><h1>Site</h1></header>'
        '<nav></nav><nav></nav>'
        '<main><h3>Skip</h3><section aria-labelledby="doesnotexist"><h2></h2></section></main>'
    )
    first = analyze_markup(html)
    second = analyze_markup(html)

    for a, b in zip(first, second):
        assert a.model_dump() == b.model_dump()
        assert [id(n) for n in flatten(a.tree)] != [id(n) for n in flatten(b.tree)]


def test_disabled_structures_yield_empty_results():
    html = "<main><h2>Sub</h2></main>"
    headings, landmarks = analyze_markup(html, headings=False, landmarks=False)
    assert headings == AnalysisResult()
    assert landmarks == AnalysisResult()


# --- Diagnostic aggregation ---

class _Node:
    def __init__(self):
        self.error_reasons = set()


def test_diagnostic_manager_merges_by_key():
    manager = DiagnosticManager("landmarks")
    a, b, c = _Node(), _Node(), _Node()

    manager.record("duplicate-same-label", Severity.ERROR, [a, b])
    manager.record("duplicate-same-label", Severity.ERROR, [c])
    manager.record("missing-main", Severity.ERROR, [])

    diagnostics = manager.get_aggregated()
    assert [(d.code, d.count) for d in diagnostics] == [("duplicate-same-label", 3), ("missing-main", 1)]
    assert a.error_reasons == {"duplicate-same-label"}


def test_diagnostic_manager_counts_a_node_once_per_code():
    manager = DiagnosticManager("headings")
    node = _Node()

    manager.record("skipped-level", Severity.ERROR, [node])
    manager.record("skipped-level", Severity.ERROR, [node])
    manager.record("empty-heading", Severity.ERROR, [node])

    counts = {d.code: d.count for d in manager.get_aggregated()}
    assert counts == {"skipped-level": 1, "empty-heading": 1}
    assert node.error_reasons == {"skipped-level", "empty-heading"}


def test_rule_order_does_not_change_the_result():
    forward = DiagnosticManager("headings")
    backward = DiagnosticManager("headings")
    nodes = [_Node(), _Node()]
    findings = [
        ("multiple-h1", Severity.WARNING, nodes),
        ("empty-heading", Severity.ERROR, nodes[:1]),
        ("missing-h1", Severity.ERROR, []),
    ]

    for finding in findings:
        forward.record(*finding)
    for finding in reversed(findings):
        backward.record(*finding)

    def by_key(manager):
        return {(d.title_key, d.description_key): d.count for d in manager.get_aggregated()}

    assert by_key(forward) == by_key(backward)


def test_results_are_frozen():
    headings, _ = analyze_markup("<h1>A</h1>")

    with pytest.raises(ValidationError):
        headings.tree = []
    with pytest.raises(ValidationError):
        headings.diagnostics = []
