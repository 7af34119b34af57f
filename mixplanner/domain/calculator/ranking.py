"""Candidate ranking for the portfolio search.

Candidates are ordered lexicographically:

1. fewer violations (option-level and portfolio-level together),
2. meeting the net target before missing it,
3. smaller absolute gap to the target (among candidates that meet it this
   is the smallest surplus),
4. higher net income,
5. smaller unit volumes, service by service.

The last rule makes the order total, so the best candidate does not depend
on the order candidates were produced in.
"""

from __future__ import annotations

import functools
from collections.abc import Iterable
from typing import Optional

from mixplanner.domain.models.portfolio import PortfolioCandidate

RankKey = tuple


def rank_key_values(
    violation_count: int,
    meets_target: bool,
    net_gap: float,
    net: float,
    units: tuple[float, ...],
) -> RankKey:
    """Sort key from raw candidate figures; smaller sorts first."""
    return (violation_count, 0 if meets_target else 1, abs(net_gap), -net, units)


def candidate_rank_key(candidate: PortfolioCandidate) -> RankKey:
    """Sort key of a candidate; smaller sorts first."""
    return rank_key_values(
        candidate.violation_count,
        candidate.meets_target,
        candidate.totals.net_gap,
        candidate.totals.net,
        candidate.unit_vector(),
    )


def compare_candidates(a: PortfolioCandidate, b: PortfolioCandidate) -> int:
    """Three-way comparison: negative when ``a`` ranks before ``b``."""
    key_a = candidate_rank_key(a)
    key_b = candidate_rank_key(b)
    if key_a < key_b:
        return -1
    if key_a > key_b:
        return 1
    return 0


def rank_candidates(
    candidates: Iterable[PortfolioCandidate],
    top_n: Optional[int] = None,
) -> list[PortfolioCandidate]:
    """Sort candidates best first and number them 1..n."""
    ordered = sorted(candidates, key=functools.cmp_to_key(compare_candidates))
    if top_n is not None:
        ordered = ordered[:top_n]
    return [
        candidate.model_copy(update={"rank": position})
        for position, candidate in enumerate(ordered, start=1)
    ]


def select_best(candidates: Iterable[PortfolioCandidate]) -> Optional[PortfolioCandidate]:
    """Best candidate, or ``None`` for an empty input."""
    best: Optional[PortfolioCandidate] = None
    for candidate in candidates:
        if best is None or compare_candidates(candidate, best) < 0:
            best = candidate
    return best
