import logging
from typing import List

from auditor.managers.diagnostic_manager import DiagnosticManager
from auditor.model import Diagnostic
from .models import StructureNode, flatten
from .registry import DOMRegistry

logger = logging.getLogger(__name__)


class QNGINE:
    """
    Quality Engine (QNGINE) for auditing heading and landmark forests.

    It flattens a forest built by the DOMBuilder, applies the audit rules
    registered for its category and folds every finding into one
    deduplicated diagnostic list. Offending nodes are tagged in place.
    """

    def __init__(self):
        """Initializes the engine by discovering and loading all available audit rules."""
        DOMRegistry.discover()

    def run_audit(self, category: str, forest: List[StructureNode]) -> List[Diagnostic]:
        """
        Runs the audit suite of one category on a forest.

        Args:
            category (str): 'headings' or 'landmarks'.
            forest (List[StructureNode]): Root nodes as returned by the DOMBuilder.

        Returns:
            List[Diagnostic]: Aggregated findings, at most one entry per issue.
        """
        defn = DOMRegistry.get_definition(category)
        if defn is None:
            logger.warning("No audit rules registered for '%s'", category)
            return []

        nodes = flatten(forest)

        manager = DiagnosticManager(category)
        for rule in defn.audit_rules:
            # Rule is expected to return a List of tuples: [(Code, Severity, Nodes)]
            for code, severity, offending in rule(nodes):
                manager.record(code, severity, offending)

        diagnostics = manager.get_aggregated()
        logger.debug(
            "%s audit: %d nodes, %d issue types", category, len(nodes), len(diagnostics)
        )
        return diagnostics
