# src/auditor/dom/builder.py
import logging
from typing import Any, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from .classifier import DEFAULT_DATA_PREFIX
from .core import ElementDefinition
from .models import HeadingNode, LandmarkNode, LandmarkRole
from .registry import DOMRegistry

logger = logging.getLogger(__name__)


class DOMBuilder:
    """
    Builder responsible for parsing raw markup and reconstructing the heading
    and landmark forests from the document-order sequence of classified elements.
    """

    def __init__(self, data_prefix: str = DEFAULT_DATA_PREFIX):
        """Initializes the builder and ensures the DOMRegistry is populated."""
        DOMRegistry.discover()
        self.data_prefix = data_prefix

    def parse_doc(self, markup: str) -> BeautifulSoup:
        """Parses raw markup into a bs4 document."""
        # Basic cleanup of potentially dirty HTML (e.g., BOM)
        clean_markup = (markup or "").replace('\ufeff', '').strip()
        return BeautifulSoup(clean_markup, 'html.parser')

    def select_elements(self, soup: BeautifulSoup, category: str) -> List[Tuple[Tag, Any]]:
        """
        Linearizes the document: returns (tag, classification) pairs in document
        order for every tag the category's classifier accepts.
        """
        defn = self._definition(category)
        selected = []
        for tag in soup.find_all(True):
            classification = defn.classifier(tag)
            if classification is not None:
                selected.append((tag, classification))
        logger.debug("Selected %d %s elements", len(selected), category)
        return selected

    def build_heading_tree(
            self, headings: List[Tuple[Tag, int]], document: Optional[Tag] = None
    ) -> List[HeadingNode]:
        """
        Nests headings by level with a parent stack in one left-to-right pass.

        Open headings at the same or a deeper level are popped first, so equal
        levels become siblings. skipped_levels is measured against the new top
        of the stack, or against the implicit level 0 for roots.
        """
        parse = self._definition("headings").parser
        roots: List[HeadingNode] = []
        stack: List[HeadingNode] = []

        for tag, level in headings:
            node = parse(tag, level, document, self.data_prefix)

            while stack and stack[-1].level >= level:
                stack.pop()

            if stack:
                node.skipped_levels = max(0, level - stack[-1].level - 1)
                stack[-1].children.append(node)
            else:
                node.skipped_levels = max(0, level - 1)
                roots.append(node)

            stack.append(node)

        return roots

    def build_landmark_tree(
            self, landmarks: List[Tuple[Tag, LandmarkRole]], document: Optional[Tag] = None
    ) -> List[LandmarkNode]:
        """
        Nests landmarks by DOM containment: each landmark becomes a child of its
        nearest ancestor that is itself a landmark, skipping any other ancestors.
        """
        parse = self._definition("landmarks").parser
        roots: List[LandmarkNode] = []
        # Keyed by object identity; bs4 compares tags structurally
        by_element: Dict[int, LandmarkNode] = {}

        for tag, role in landmarks:
            node = parse(tag, role, document, self.data_prefix)
            by_element[id(tag)] = node

            parent = None
            for ancestor in tag.parents:
                parent = by_element.get(id(ancestor))
                if parent is not None:
                    break

            if parent is not None:
                parent.children.append(node)
            else:
                roots.append(node)

        return roots

    @staticmethod
    def _definition(category: str) -> ElementDefinition:
        defn = DOMRegistry.get_definition(category)
        if defn is None:
            raise LookupError(f"No structure definition registered for '{category}'")
        return defn
