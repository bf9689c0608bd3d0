"""
backend/privacy.py

Privacy masking for outbound responses.

Every response produced for an authenticated viewer is walked depth-first and
each investor-shaped record found anywhere in it is replaced according to the
viewer's relationship to that investor:

    self                 -> full record        (visibilityLevel "full")
    admin-tier viewer    -> full record        (visibilityLevel "admin")
    peer, anonymous      -> narrow projection  (visibilityLevel "anonymous")
    peer, not anonymous  -> full record        (visibilityLevel "full")

FAIL-OPEN POLICY: if masking raises, mask() logs the error and returns the
original, unmasked body so the request still completes. Changing this to
fail-closed is a threat-model decision, not a refactor.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Protocol, runtime_checkable

from backend.models import UserRole, VisibilityLevel, Viewer

logger = logging.getLogger(__name__)

# Traversal stops below this depth and returns the subtree unchanged
MASK_MAX_DEPTH = 10

ANONYMOUS_DISPLAY_NAME = "Anonymous Investor"
MASKED_EMAIL = "••••••••@••••.com"

# Document-wrapper bookkeeping keys that are never descended into
INTERNAL_KEYS = frozenset({"_doc", "__v"})
INTERNAL_KEY_PREFIX = "$"


@runtime_checkable
class Plainable(Protocol):
    """Storage-layer objects that can convert themselves to plain dicts/lists."""

    def to_plain(self) -> Any:
        ...


def to_plain(node: Any) -> Any:
    if isinstance(node, Plainable):
        return node.to_plain()
    return node


def is_investor_record(node: Any) -> bool:
    """
    Shape test for investor entries inside arbitrary response data.

    An investor record carries role == "investor" and a non-empty
    privacySettings mapping keyed by project id.
    """
    if not isinstance(node, Mapping):
        return False
    settings = node.get("privacySettings")
    return (
        node.get("role") == UserRole.investor.value
        and isinstance(settings, Mapping)
        and len(settings) > 0
    )


def _is_self(record: Mapping[str, Any], viewer_id: Optional[str]) -> bool:
    if viewer_id is None:
        return False
    for key in ("id", "_id"):
        value = record.get(key)
        if value is not None and str(value) == viewer_id:
            return True
    return False


def _project_privacy(record: Mapping[str, Any], project_id: Any) -> Mapping[str, Any]:
    # Malformed settings or a non-string project id count as "no entry"
    privacy_settings = record.get("privacySettings")
    if not isinstance(privacy_settings, Mapping) or not isinstance(project_id, str):
        return {}
    project_privacy = privacy_settings.get(project_id)
    return project_privacy if isinstance(project_privacy, Mapping) else {}


def visibility_for(
    record: Mapping[str, Any],
    project_id: Optional[str],
    viewer_id: Optional[str],
    is_viewer_admin: bool,
) -> Dict[str, Any]:
    """
    Mask investor data based on privacy settings and viewer role.

    Args:
        record: Investor record (plain mapping)
        project_id: Project whose privacy settings apply
        viewer_id: Id of the requesting viewer
        is_viewer_admin: Whether the viewer is project_admin, admin or super_admin

    Returns:
        New dict; the input record is never mutated.
    """
    # Self always sees own full data
    if _is_self(record, viewer_id):
        return {
            **record,
            "isAnonymous": False,
            "isSelf": True,
            "visibilityLevel": VisibilityLevel.full.value,
        }

    project_privacy = _project_privacy(record, project_id)
    is_anonymous = project_privacy.get("isAnonymous") is True

    # Admin sees everything, plus the anonymity flag
    if is_viewer_admin:
        return {
            **record,
            "isAnonymous": is_anonymous,
            "isSelf": False,
            "visibilityLevel": VisibilityLevel.admin.value,
        }

    # Co-investor of an anonymous investor: listed keys only, the rest is dropped
    if is_anonymous:
        record_id = record.get("id")
        return {
            "id": record_id if record_id is not None else record.get("_id"),
            "name": project_privacy.get("displayName") or ANONYMOUS_DISPLAY_NAME,
            "email": MASKED_EMAIL,
            "avatar": None,
            "totalInvested": record.get("totalInvested") if project_privacy.get("showInvestmentAmount") else None,
            "isAnonymous": True,
            "isSelf": False,
            "visibilityLevel": VisibilityLevel.anonymous.value,
        }

    return {
        **record,
        "isAnonymous": False,
        "isSelf": False,
        "visibilityLevel": VisibilityLevel.full.value,
    }


def mask_investor(node: Mapping[str, Any], viewer: Viewer) -> Mapping[str, Any]:
    if not is_investor_record(node):
        return node
    return visibility_for(node, node.get("projectId"), viewer.id, viewer.is_admin_tier)


def _is_internal_key(key: Any) -> bool:
    return isinstance(key, str) and (key.startswith(INTERNAL_KEY_PREFIX) or key in INTERNAL_KEYS)


def _should_recurse(value: Any) -> bool:
    return isinstance(value, (Mapping, list, tuple)) or isinstance(value, Plainable)


def _mask_sequence(items, viewer: Viewer, depth: int):
    masked = [deep_mask(item, viewer, depth + 1) for item in items]
    return tuple(masked) if isinstance(items, tuple) else masked


def _mask_mapping(node: Mapping[str, Any], viewer: Viewer, depth: int) -> Dict[Any, Any]:
    result = dict(mask_investor(node, viewer))

    for key, value in result.items():
        if _is_internal_key(key):
            continue
        if isinstance(value, (list, tuple)):
            result[key] = _mask_sequence(value, viewer, depth)
        elif _should_recurse(value):
            result[key] = deep_mask(value, viewer, depth + 1)

    return result


def deep_mask(node: Any, viewer: Viewer, depth: int = 0) -> Any:
    """
    Recursively mask every investor record reachable from node.

    Raises whatever the visibility rule raises; use mask() for the
    fail-open behaviour.
    """
    if depth > MASK_MAX_DEPTH or node is None:
        return node

    node = to_plain(node)

    if isinstance(node, (list, tuple)):
        return _mask_sequence(node, viewer, depth)

    if isinstance(node, Mapping):
        return _mask_mapping(node, viewer, depth)

    # str, numbers, datetimes, bytes and other leaves
    return node


def mask(body: Any, viewer: Optional[Viewer]) -> Any:
    """
    Mask a response body for a viewer.

    Public responses (no viewer) pass through untouched. Any error while
    masking is logged and the original body is returned (fail-open).
    """
    if viewer is None:
        return body

    try:
        return deep_mask(body, viewer)
    except Exception:
        logger.exception(
            "[PRIVACY] deep mask failed, returning original data: user_id=%s, role=%s",
            viewer.id, viewer.role,
        )
        return body
