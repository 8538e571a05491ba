# tests/auditor/test_report_controller.py
import json

from auditor.controllers.analysis_controller import analyze_markup
from auditor.controllers.report_controller import ReportController
from auditor.model import AnalysisState, StructureAnalysis

PAGE = (
    '<header aria-label="Site"></header>'
    '<main><h1>Title</h1><h3>Deep</h3></main>'
    '<nav></nav><nav></nav>'
)


def _analysis(markup=PAGE) -> StructureAnalysis:
    headings, landmarks = analyze_markup(markup)
    return StructureAnalysis(reference="https://example.org/", headings=headings, landmarks=landmarks)


def test_render_text_outlines_both_structures():
    text = ReportController(_analysis()).render_text()

    assert text.startswith("Structure report for https://example.org/ (complete)")
    assert "  H1 Title" in text
    assert "    H3 Deep  [skipped 1 level(s)]  (skipped-level)" in text
    assert '  <header> banner "Site"' in text
    assert "  <nav> navigation  (multiple-unlabeled-same-role)" in text
    assert "structure.headings.error.skipped-level x1" in text
    assert "structure.landmarks.error.multiple-unlabeled-same-role x2" in text


def test_render_text_empty_sections():
    analysis = StructureAnalysis(reference="page", state=AnalysisState.FAILED)
    text = ReportController(analysis).render_text()

    assert "(failed)" in text
    assert text.count("(none)") == 2
    assert "Issues:" not in text


def test_json_report_is_serializable_without_elements():
    data = json.loads(ReportController(_analysis()).to_json())

    assert data["reference"] == "https://example.org/"
    assert data["state"] == "complete"
    assert data["issue_count"] == 3

    h1 = data["headings"]["tree"][0]
    assert "element" not in h1
    assert h1["children"][0]["error_reasons"] == ["skipped-level"]

    codes = [d["code"] for d in data["landmarks"]["diagnostics"]]
    assert codes == ["multiple-unlabeled-same-role"]
    assert data["landmarks"]["diagnostics"][0]["severity"] == "warning"


def test_landmark_lines_use_the_resolved_role():
    text = ReportController(_analysis('<div role="main"></div><div role="search" aria-label="Find"></div>')).render_text()

    assert "  <div> main" in text
    assert '  <div> search "Find"' in text
