"""Filters applied to reconciled findings.

A predicate returns True for findings to keep. They are plain callables so
any ``Callable[[Finding], bool]`` works in their place.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable


def _read_attribute(finding: Any, attribute: str) -> Any:
    if hasattr(finding, attribute):
        return getattr(finding, attribute)
    attributes = getattr(finding, "attributes", None) or {}
    return attributes.get(attribute)


def skip_by_name(*names: str, attribute: str = "object_name") -> Callable[[Any], bool]:
    """Drop findings whose ``attribute`` matches one of ``names``, ignoring case.

    Examples
    --------
    >>> keep = skip_by_name("public.idx_orders_created_at")
    >>> await ClusterCheck(cluster).arun(query, keep=keep)
    """
    excluded = {name.casefold() for name in names}

    def keep(finding: Any) -> bool:
        value = _read_attribute(finding, attribute)
        return value is None or str(value).casefold() not in excluded

    return keep


def skip_below_threshold(attribute: str, threshold: float) -> Callable[[Any], bool]:
    """Drop findings whose numeric ``attribute`` is below ``threshold``.

    Findings without the attribute are kept.
    """

    def keep(finding: Any) -> bool:
        value = _read_attribute(finding, attribute)
        return value is None or float(value) >= threshold

    return keep


def all_of(*predicates: Callable[[Any], bool]) -> Callable[[Any], bool]:
    def keep(finding: Any) -> bool:
        return all(predicate(finding) for predicate in predicates)

    return keep
