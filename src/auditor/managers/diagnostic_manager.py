# src/auditor/managers/diagnostic_manager.py
import logging
from typing import Any, Dict, List, Set, Tuple

from auditor.dom.core import Severity, issue_keys
from auditor.model import Diagnostic

logger = logging.getLogger(__name__)


class DiagnosticManager:
    """
    Collects audit findings for one structure kind during a single run.

    Findings are merged by their (title_key, description_key) pair so the
    resulting list never holds two entries for the same issue. Offending
    nodes get the issue code added to their `error_reasons`; a node counts
    at most once per issue code.
    """

    def __init__(self, category: str):
        self.category = category
        self._diagnostics: Dict[Tuple[str, str], Diagnostic] = {}
        self._seen: Set[Tuple[int, str]] = set()

    def record(self, code: str, severity: Severity, nodes: List[Any]) -> None:
        """
        Records one finding. An empty node list is a page-level finding
        counting once; otherwise every not yet counted node adds one.
        """
        if nodes:
            count = 0
            for node in nodes:
                marker = (id(node), code)
                if marker in self._seen:
                    continue
                self._seen.add(marker)
                node.error_reasons.add(code)
                count += 1
            if count == 0:
                return
        else:
            count = 1

        title_key, description_key = issue_keys(self.category, code)
        key = (title_key, description_key)

        existing = self._diagnostics.get(key)
        if existing:
            existing.count += count
        else:
            self._diagnostics[key] = Diagnostic(
                code=code,
                category=self.category,
                severity=severity,
                title_key=title_key,
                description_key=description_key,
                count=count,
            )
        logger.debug("Recorded %s/%s (+%d)", self.category, code, count)

    def get_aggregated(self) -> List[Diagnostic]:
        """Returns the merged diagnostics in first-seen order."""
        return list(self._diagnostics.values())
