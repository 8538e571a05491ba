from enum import Enum
from typing import Any, Callable, List, Optional, Set, Tuple

from pydantic import BaseModel


def audit_spec(codes: List[str]):
    """
    Decorator to declare which issue codes a specific audit rule function returns.
    Facilitates auto-discovery by the DOMRegistry.
    """
    def decorator(func):
        func.defined_codes = codes
        return func
    return decorator


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


# Type alias for audit findings: (Code, Severity, Offending nodes).
# An empty node list marks a page-level finding that counts once.
AuditResult = Tuple[str, Severity, List[Any]]

KEY_NAMESPACE = "structure"


def issue_keys(category: str, code: str) -> Tuple[str, str]:
    """
    Returns the stable (title_key, description_key) pair for an issue code.
    e.g. ('headings', 'missing-h1') -> 'structure.headings.error.missing-h1'
    """
    title_key = f"{KEY_NAMESPACE}.{category}.error.{code}"
    return title_key, f"{title_key}.description"


class ElementDefinition:
    """
    Configuration object binding one structure kind (headings, landmarks) to its
    classifier, node parser and audit rules.
    """

    def __init__(
            self,
            category: str,
            classifier: Callable[..., Any],
            parser: Callable[..., BaseModel],
            audit_rules: Optional[List[Callable[[List[Any]], List[AuditResult]]]] = None,
            possible_codes: Optional[List[str]] = None
    ):
        self.category = category
        self.classifier = classifier
        self.parser = parser
        self.audit_rules = audit_rules or []

        # --- Auto-Discovery of Issue Codes ---
        final_codes: Set[str] = set(possible_codes or [])

        for rule in self.audit_rules:
            if hasattr(rule, 'defined_codes'):
                final_codes.update(rule.defined_codes)

        self.codes = sorted(list(final_codes))
