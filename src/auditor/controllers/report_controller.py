import json
import logging
from typing import Any, Dict, List

from auditor.dom.models import HeadingNode, LandmarkNode
from auditor.model import AnalysisResult, Diagnostic, StructureAnalysis

logger = logging.getLogger(__name__)

SEVERITY_ICONS = {"error": "❌", "warning": "⚠️"}


class ReportController:
    """
    Turns a published StructureAnalysis into something a terminal or another
    tool can consume: an indented text outline or a JSON document.
    """

    def __init__(self, analysis: StructureAnalysis):
        self.analysis = analysis

    # --- JSON ---

    def to_dict(self) -> Dict[str, Any]:
        """Serializes the analysis; bs4 elements are left out."""
        data = self.analysis.model_dump(mode="json")
        for section in ("headings", "landmarks"):
            for node in self._walk_dicts(data[section]["tree"]):
                node["error_reasons"] = sorted(node.get("error_reasons", []))
        data["issue_count"] = self.analysis.headings.issue_count + self.analysis.landmarks.issue_count
        return data

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    # --- TEXT ---

    def render_text(self) -> str:
        analysis = self.analysis
        lines = [f"Structure report for {analysis.reference or '<markup>'} ({analysis.state.value})"]

        lines.append("")
        lines.append("Headings:")
        lines.extend(self._render_section(analysis.headings, self._heading_line))

        lines.append("")
        lines.append("Landmarks:")
        lines.extend(self._render_section(analysis.landmarks, self._landmark_line))

        return "\n".join(lines)

    def _render_section(self, result: AnalysisResult, formatter) -> List[str]:
        lines: List[str] = []
        if not result.tree:
            lines.append("  (none)")
        for root in result.tree:
            self._render_node(root, 1, formatter, lines)

        if result.diagnostics:
            lines.append("  Issues:")
            lines.extend(f"    {self._diagnostic_line(d)}" for d in result.diagnostics)
        return lines

    def _render_node(self, node, depth: int, formatter, lines: List[str]) -> None:
        # Iterative pre-order walk
        stack = [(node, depth)]
        while stack:
            current, current_depth = stack.pop()
            lines.append("  " * current_depth + formatter(current))
            for child in reversed(current.children):
                stack.append((child, current_depth + 1))

    @staticmethod
    def _heading_line(node: HeadingNode) -> str:
        line = f"H{node.level} {node.text or '(empty)'}"
        if node.skipped_levels:
            line += f"  [skipped {node.skipped_levels} level(s)]"
        return line + ReportController._reasons(node)

    @staticmethod
    def _landmark_line(node: LandmarkNode) -> str:
        line = f"<{node.tag}> {node.role.value}"
        if node.accessible_name:
            line += f' "{node.accessible_name}"'
        return line + ReportController._reasons(node)

    @staticmethod
    def _reasons(node) -> str:
        if not node.error_reasons:
            return ""
        return "  (" + ", ".join(sorted(node.error_reasons)) + ")"

    @staticmethod
    def _diagnostic_line(diagnostic: Diagnostic) -> str:
        icon = SEVERITY_ICONS.get(diagnostic.severity.value, "-")
        return f"{icon} {diagnostic.title_key} x{diagnostic.count} ({diagnostic.description_key})"

    @staticmethod
    def _walk_dicts(nodes: List[Dict[str, Any]]):
        stack = list(nodes)
        while stack:
            node = stack.pop()
            yield node
            stack.extend(node.get("children", []))
