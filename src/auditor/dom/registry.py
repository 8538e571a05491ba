# src/auditor/dom/registry.py
import importlib
import pkgutil
import logging
from typing import Dict, List, Optional, Set

from .core import ElementDefinition

logger = logging.getLogger(__name__)


class DOMRegistry:
    """
    Central registry for structure definitions (classifier, parser, audit rules).

    Dynamically discovers and loads ElementDefinition modules from the
    'auditor.dom.elements' package, keyed by their category.
    """

    _definitions: Dict[str, ElementDefinition] = {}
    _all_codes: Set[str] = set()
    _loaded: bool = False

    @classmethod
    def discover(cls) -> None:
        """
        Discovers and registers all element definitions found in the 'auditor.dom.elements' package.

        Each module exposing a `DEFINITION` attribute (instance of `ElementDefinition`)
        is registered under its category. Modules that fail to import are logged
        and skipped.
        """
        if cls._loaded:
            return

        try:
            import auditor.dom.elements as elements_pkg

            for _, name, _ in pkgutil.iter_modules(elements_pkg.__path__):
                full_name = f"auditor.dom.elements.{name}"
                try:
                    module = importlib.import_module(full_name)
                except Exception as e:
                    logger.error("Error loading module %s: %s", name, e)
                    continue

                defn = getattr(module, "DEFINITION", None)
                if isinstance(defn, ElementDefinition):
                    cls.register(defn)

            cls._loaded = True
        except ImportError as e:
            logger.error("Could not find elements package: %s", e)

    @classmethod
    def register(cls, defn: ElementDefinition) -> None:
        cls._definitions[defn.category] = defn
        cls._all_codes.update(defn.codes)
        logger.debug("Structure definition loaded: %s (%d rules)", defn.category, len(defn.audit_rules))

    @classmethod
    def get_definition(cls, category: str) -> Optional[ElementDefinition]:
        """Retrieves the definition for a structure category ('headings', 'landmarks')."""
        return cls._definitions.get(category)

    @classmethod
    def get_categories(cls) -> List[str]:
        return sorted(cls._definitions.keys())

    @classmethod
    def get_all_possible_codes(cls) -> List[str]:
        """Returns a list of all unique issue codes registered in the system."""
        return sorted(list(cls._all_codes))
