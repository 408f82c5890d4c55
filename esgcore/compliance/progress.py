# -*- coding: utf-8 -*-
"""
Framework Progress Tracker

Walks a disclosure tree of arbitrary depth and reports how many of its
fields are complete:

    percent = round_half_up(100 x completed / total), or 0 for an empty tree

Raw trees are nested mappings. A mapping that has a ``completed`` key is a
leaf field; every other mapping is a section to recurse into. Scalars found
at section level (section ``name``, ``color`` ...) are metadata and ignored.

Completion is decided by a per-framework predicate. Most frameworks use the
leaf's own ``completed`` flag; SDG entries are complete when ``relevance``
is filled in and at least one of the positive or negative impact texts is.

Example:
    >>> from esgcore.compliance.progress import compute_progress
    >>> compute_progress({
    ...     "general": {"2-1": {"value": "Acme plc", "completed": True}},
    ...     "strategy": {"2-22": {"value": "", "completed": False}},
    ... }).percent
    50
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Mapping, Optional, Protocol, Tuple, Union

from esgcore.compliance.models import (
    DisclosureBranch,
    DisclosureField,
    DisclosureLeaf,
    FrameworkId,
    FrameworkStatus,
    ProgressResult,
    coerce_framework_id,
    value_is_completed,
)
from esgcore.determinism import HUNDRED, round_percent, safe_divide, utcnow
from esgcore.exceptions import MalformedTreeError

logger = logging.getLogger(__name__)

TreeInput = Union[DisclosureBranch, Mapping[str, Any]]

LEAF_MARKER = "completed"
_FIELD_KEYS = ("name", "value", "completed")


# =============================================================================
# Parsing
# =============================================================================


def _parse_field(field_id: str, raw: Mapping[str, Any]) -> DisclosureField:
    attributes = {k: v for k, v in raw.items() if k not in _FIELD_KEYS}
    if "value" in raw:
        completed = value_is_completed(raw["value"])
    else:
        completed = raw.get(LEAF_MARKER) is True
    return DisclosureField(
        id=field_id,
        name=str(raw.get("name") or ""),
        value=raw.get("value"),
        completed=completed,
        attributes=attributes,
    )


def _parse_branch(raw: Mapping[str, Any]) -> DisclosureBranch:
    children = {}
    for key, child in raw.items():
        if not isinstance(child, Mapping):
            continue
        if LEAF_MARKER in child:
            children[str(key)] = DisclosureLeaf(field=_parse_field(str(key), child))
        else:
            children[str(key)] = _parse_branch(child)
    return DisclosureBranch(children=children)


def parse_disclosure_tree(tree: TreeInput) -> DisclosureBranch:
    """Convert a raw nested mapping into a :class:`DisclosureBranch`.

    Already-parsed branches are returned unchanged. A field's ``completed``
    flag is recomputed from its ``value`` when a value is present.

    Raises:
        MalformedTreeError: If the root is not a mapping.
    """
    if isinstance(tree, DisclosureBranch):
        return tree
    if not isinstance(tree, Mapping):
        raise MalformedTreeError(
            f"Disclosure tree root must be a mapping, got {type(tree).__name__}",
            path="",
        )
    return _parse_branch(tree)


# =============================================================================
# Completion predicates
# =============================================================================


class CompletionPredicate(Protocol):
    """Decides whether one disclosure field counts as completed."""

    def is_complete(self, field: DisclosureField) -> bool:
        ...


class GenericLeafPredicate:
    """A field is complete when its ``completed`` flag is set."""

    def is_complete(self, field: DisclosureField) -> bool:
        return field.completed is True


class SDGImpactPredicate:
    """SDG entry: relevance AND (positive OR negative impacts) filled in."""

    def is_complete(self, field: DisclosureField) -> bool:
        attrs = field.attributes
        return value_is_completed(attrs.get("relevance")) and (
            value_is_completed(attrs.get("positiveImpacts"))
            or value_is_completed(attrs.get("negativeImpacts"))
        )


_GENERIC = GenericLeafPredicate()
_PREDICATES: Dict[FrameworkId, CompletionPredicate] = {
    FrameworkId.SDG: SDGImpactPredicate(),
}


def predicate_for(framework_id: Union[str, FrameworkId, None]) -> CompletionPredicate:
    """Return the completion predicate for a framework (generic by default)."""
    if framework_id is None:
        return _GENERIC
    return _PREDICATES.get(coerce_framework_id(framework_id), _GENERIC)


# =============================================================================
# Tree walking
# =============================================================================


def iter_leaves(
    node: Union[DisclosureBranch, DisclosureLeaf], path: Tuple[str, ...] = (),
) -> Iterator[Tuple[Tuple[str, ...], DisclosureField]]:
    """Depth-first walk yielding ``(path, field)`` for every leaf."""
    if isinstance(node, DisclosureLeaf):
        yield path, node.field
        return
    for key, child in node.children.items():
        yield from iter_leaves(child, path + (key,))


def count_total_fields(tree: TreeInput) -> int:
    return sum(1 for _ in iter_leaves(parse_disclosure_tree(tree)))


def count_completed_fields(
    tree: TreeInput, predicate: Optional[CompletionPredicate] = None,
) -> int:
    predicate = predicate or _GENERIC
    return sum(
        1 for _, field in iter_leaves(parse_disclosure_tree(tree))
        if predicate.is_complete(field)
    )


def compute_progress(
    tree: TreeInput, predicate: Optional[CompletionPredicate] = None,
) -> ProgressResult:
    """Completed/total field counts and the rounded completion percentage."""
    predicate = predicate or _GENERIC
    total = 0
    completed = 0
    for _, field in iter_leaves(parse_disclosure_tree(tree)):
        total += 1
        if predicate.is_complete(field):
            completed += 1
    percent = round_percent(safe_divide(completed * HUNDRED, total))
    return ProgressResult(percent=percent, completed_count=completed, total_count=total)


def flatten_tree(tree: TreeInput) -> Dict[str, Dict[str, Any]]:
    """Dotted-path mapping of every leaf's name, value and completion."""
    return {
        ".".join(path): {
            "name": field.name,
            "value": field.value,
            "completed": field.completed,
        }
        for path, field in iter_leaves(parse_disclosure_tree(tree))
    }


def incomplete_fields(
    tree: TreeInput, predicate: Optional[CompletionPredicate] = None,
) -> List[str]:
    """Dotted paths of fields still missing, in tree order."""
    predicate = predicate or _GENERIC
    return [
        ".".join(path)
        for path, field in iter_leaves(parse_disclosure_tree(tree))
        if not predicate.is_complete(field)
    ]


def status_for_progress(percent: int) -> FrameworkStatus:
    """0 -> draft, 1-99 -> in-progress, 100 -> completed."""
    if percent >= 100:
        return FrameworkStatus.COMPLETED
    if percent > 0:
        return FrameworkStatus.IN_PROGRESS
    return FrameworkStatus.DRAFT


# =============================================================================
# Tracker
# =============================================================================


class FrameworkProgressTracker:
    """Progress tracking bound to one framework's completion predicate."""

    def __init__(self, framework_id: Union[str, FrameworkId]):
        self.framework_id = coerce_framework_id(framework_id)
        self.predicate = predicate_for(self.framework_id)

    def compute_progress(self, tree: TreeInput) -> ProgressResult:
        result = compute_progress(tree, self.predicate)
        logger.debug(
            "%s progress: %d/%d fields (%d%%)",
            self.framework_id.value,
            result.completed_count, result.total_count, result.percent,
        )
        return result

    def incomplete_fields(self, tree: TreeInput) -> List[str]:
        return incomplete_fields(tree, self.predicate)

    def prepare_for_analysis(self, tree: TreeInput) -> Dict[str, Any]:
        """Flattened fields plus completion metadata for an analysis step."""
        parsed = parse_disclosure_tree(tree)
        progress = self.compute_progress(parsed)
        return {
            "framework": self.framework_id.value,
            "timestamp": utcnow().isoformat(),
            "data": flatten_tree(parsed),
            "metadata": {
                "total_fields": progress.total_count,
                "completed_fields": progress.completed_count,
                "progress": progress.percent,
            },
        }


__all__ = [
    "parse_disclosure_tree",
    "CompletionPredicate",
    "GenericLeafPredicate",
    "SDGImpactPredicate",
    "predicate_for",
    "iter_leaves",
    "count_total_fields",
    "count_completed_fields",
    "compute_progress",
    "flatten_tree",
    "incomplete_fields",
    "status_for_progress",
    "FrameworkProgressTracker",
]
