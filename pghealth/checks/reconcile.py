"""Merging per-member diagnostic results into one cluster-level answer.

Replication copies data but not runtime counters, so members can disagree:

- UNION_ACROSS_MEMBERS: an object qualifies if any member reports it. Used for
  risk signals that must not be missed (a table scanned sequentially on one
  replica is still missing an index).
- INTERSECTION_ACROSS_MEMBERS: an object qualifies only if every member
  reports it. Used where one member under-reports (an index looks unused on
  a freshly restarted replica whose scan counters are zero).
- PRIMARY_ONLY: the single list from the primary is passed through.

The functions are pure and keep a single representative per identity key;
values from different members are never combined.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Hashable, Sequence


class Finding(Protocol):
    """A reported anti-pattern instance, comparable across members by ``identity_key``."""

    @property
    def identity_key(self) -> Hashable: ...


class ReconciliationPolicy(StrEnum):
    PRIMARY_ONLY = "primary_only"
    UNION_ACROSS_MEMBERS = "union_across_members"
    INTERSECTION_ACROSS_MEMBERS = "intersection_across_members"


def primary_only[T: Finding](results_from_members: Sequence[Sequence[T]]) -> list[T]:
    if len(results_from_members) != 1:
        msg = f"primary only reconciliation expects exactly one result list, got {len(results_from_members)}"
        raise ValueError(msg)
    return list(results_from_members[0])


def union_across_members[T: Finding](results_from_members: Sequence[Sequence[T]]) -> list[T]:
    """Keep every identity reported by any member; the first one seen represents it."""
    merged: dict[Hashable, T] = {}
    for findings in results_from_members:
        for finding in findings:
            merged.setdefault(finding.identity_key, finding)
    return list(merged.values())


def intersection_across_members[T: Finding](results_from_members: Sequence[Sequence[T]]) -> list[T]:
    """Keep identities reported by every member; the first member's instance represents it."""
    if not results_from_members:
        return []

    first, *others = results_from_members
    common: set[Hashable] = {finding.identity_key for finding in first}
    for findings in others:
        common &= {finding.identity_key for finding in findings}

    result: list[T] = []
    for finding in first:
        key = finding.identity_key
        if key in common:
            result.append(finding)
            common.discard(key)
    return result


def reconcile[T: Finding](policy: ReconciliationPolicy, results_from_members: Sequence[Sequence[T]]) -> list[T]:
    match policy:
        case ReconciliationPolicy.PRIMARY_ONLY:
            return primary_only(results_from_members)
        case ReconciliationPolicy.UNION_ACROSS_MEMBERS:
            return union_across_members(results_from_members)
        case ReconciliationPolicy.INTERSECTION_ACROSS_MEMBERS:
            return intersection_across_members(results_from_members)
