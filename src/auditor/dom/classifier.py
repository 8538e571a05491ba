# src/auditor/dom/classifier.py
"""
Element classification for the structure audit.

Decides whether a bs4 Tag is a heading (and its level) or a landmark (and
its role), and resolves a landmark's accessible name. All functions are pure:
they read the tag and its document but never modify either.
"""
import json
import logging
import re
from typing import Any, Dict, Optional

from bs4 import Tag

from .models import EditHints, LandmarkRole

logger = logging.getLogger(__name__)

HEADING_PATTERN = re.compile(r"^h([1-6])$", re.IGNORECASE)

IMPLICIT_LANDMARK_ROLES: Dict[str, LandmarkRole] = {
    "main": LandmarkRole.MAIN,
    "nav": LandmarkRole.NAVIGATION,
    "aside": LandmarkRole.COMPLEMENTARY,
    "header": LandmarkRole.BANNER,
    "footer": LandmarkRole.CONTENTINFO,
    "form": LandmarkRole.FORM,
}

EXPLICIT_LANDMARK_ROLES = {role.value for role in LandmarkRole if role is not LandmarkRole.NONE}

# header/footer only map to banner/contentinfo outside of these elements
SCOPING_ELEMENTS = {"article", "aside", "footer", "header", "main", "nav", "section"}

DEFAULT_DATA_PREFIX = "data-a11y"


def classify_heading(tag: Tag) -> Optional[int]:
    """Returns the heading level (1-6) for h1..h6 tags, None otherwise."""
    match = HEADING_PATTERN.match(tag.name or "")
    if not match:
        return None
    return int(match.group(1))


def classify_landmark(tag: Tag) -> Optional[LandmarkRole]:
    """
    Resolves the landmark role of a tag.

    1. An explicit role attribute wins outright. A non-landmark role
       (e.g. 'button' or 'presentation') means the tag is no landmark.
    2. Otherwise the implicit role of the tag name is used.
    3. A section is a region landmark only when it has an accessible name.
    """
    explicit = _explicit_role(tag)
    if explicit is not None:
        if explicit in EXPLICIT_LANDMARK_ROLES:
            return LandmarkRole(explicit)
        return None

    name = (tag.name or "").lower()
    if name == "section":
        return LandmarkRole.REGION if has_accessible_name(tag) else None

    role = IMPLICIT_LANDMARK_ROLES.get(name)
    if role in (LandmarkRole.BANNER, LandmarkRole.CONTENTINFO) and _is_scoped(tag):
        return None
    return role


def _explicit_role(tag: Tag) -> Optional[str]:
    value = tag.get("role")
    if isinstance(value, list):
        value = " ".join(value)
    if not value or not value.strip():
        return None
    # First token only; role fallback lists are not resolved
    return value.split()[0].lower()


def _is_scoped(tag: Tag) -> bool:
    return any(parent.name in SCOPING_ELEMENTS for parent in tag.parents)


def _document_of(tag: Tag) -> Optional[Tag]:
    root = tag
    for parent in tag.parents:
        root = parent
    return root


def accessible_name(tag: Tag, document: Optional[Tag] = None) -> str:
    """
    Computes the accessible name from aria-label, then aria-labelledby.

    Referenced ids are looked up in the same document; missing references
    and empty texts are skipped silently.
    """
    label = tag.get("aria-label")
    if isinstance(label, str) and label.strip():
        return label.strip()

    labelledby = tag.get("aria-labelledby")
    if isinstance(labelledby, list):
        labelledby = " ".join(labelledby)
    if not labelledby or not labelledby.strip():
        return ""

    root = document if document is not None else _document_of(tag)
    texts = []
    for ref_id in labelledby.split():
        referenced = root.find(id=ref_id) if root is not None else None
        if referenced is None:
            continue
        text = referenced.get_text().strip()
        if text:
            texts.append(text)
    return " ".join(texts)


def has_accessible_name(tag: Tag, document: Optional[Tag] = None) -> bool:
    return bool(accessible_name(tag, document))


def read_edit_hints(tag: Tag, options_attr: str, prefix: str = DEFAULT_DATA_PREFIX) -> Optional[EditHints]:
    """
    Reads the editability attributes of a tag, e.g. data-a11y-record-uid.
    Returns None when the tag carries none of them.

    Malformed option payloads are treated as empty.
    """
    attr_names = {
        "available_options": f"{prefix}-{options_attr}",
        "record_table": f"{prefix}-record-table",
        "record_column": f"{prefix}-record-column",
        "record_uid": f"{prefix}-record-uid",
        "edit_link": f"{prefix}-record-edit-link",
    }
    if not any(tag.has_attr(attr) for attr in attr_names.values()):
        return None

    options = _parse_options(tag.get(attr_names["available_options"]), tag)
    return EditHints(
        available_options=options,
        record_table=tag.get(attr_names["record_table"], ""),
        record_column=tag.get(attr_names["record_column"], ""),
        record_uid=tag.get(attr_names["record_uid"], ""),
        edit_link=tag.get(attr_names["edit_link"], ""),
    )


def _parse_options(raw: Any, tag: Tag) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        options = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning("Failed to parse available options on <%s> (line %s): %s", tag.name, tag.sourceline, e)
        return {}
    if not isinstance(options, dict):
        logger.warning("Ignoring non-object available options on <%s> (line %s)", tag.name, tag.sourceline)
        return {}
    return options
