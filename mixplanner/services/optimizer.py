"""Service portfolio optimizer.

Exhaustive search over the cross product of per-service volume candidates.
Leading services are walked with an explicit odometer of index counters;
the trailing ``block_depth`` services are evaluated together as one numpy
block per prefix. Prefixes whose option-level violations already exceed the
worst retained candidate are skipped, since portfolio-level violations can
only add to that count.
"""

from __future__ import annotations

import bisect
import itertools
import math
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np

from mixplanner.core import constants as C
from mixplanner.core.exceptions import SolverError
from mixplanner.core.logging import get_logger
from mixplanner.core.numeric import clamp
from mixplanner.domain.calculator.config_resolution import (
    resolve_comfort_floor,
    resolve_hands_on_weight,
    resolve_price_per_unit,
    resolve_pricing_ceiling,
    resolve_pricing_floor,
    resolve_tax_rate,
)
from mixplanner.domain.calculator.ranking import rank_candidates, rank_key_values
from mixplanner.domain.calculator.service_economics import estimate_hands_on_target
from mixplanner.domain.models.metrics import CapacityMetrics, CostMetrics, TaxBreakdown
from mixplanner.domain.models.portfolio import (
    OptimizationResult,
    PortfolioCandidate,
    PortfolioConstraints,
    PortfolioTotals,
)
from mixplanner.domain.models.scenario import PortfolioConstraintInput, as_input
from mixplanner.domain.models.service import ServiceCandidate, ServiceConfig, Violation
from mixplanner.services.candidates import build_service_candidates

log = get_logger(__name__)

# Columns of an option/totals row
REVENUE, DIRECT_COST, TAX, NET, SERVICE_DAYS, TRAVEL_DAYS, HANDS_ON_DAYS, VIOLATIONS = range(8)
ROW_WIDTH = 8


@dataclass
class SearchProgress:
    """Progress snapshot passed to ``progress_callback``."""

    processed: int
    total: int
    retained: int


def resolve_constraints(
    constraints: PortfolioConstraintInput | dict[str, Any] | None,
    capacity: CapacityMetrics,
    costs: CostMetrics,
    configs: Mapping[str, ServiceConfig],
    hands_on_minimum: Optional[float] = None,
) -> PortfolioConstraints:
    """Portfolio limits with overrides applied.

    Service days default to billable days after travel, travel days to the
    travel allowance, the hands-on target to the baseline mix's hands-on
    share and the comfort floor to the pricing buffer.

    A positive ``hands_on_minimum`` replaces the baseline band with a lower
    bound only, unless the constraints carry an explicit hands-on target.
    """
    data = as_input(PortfolioConstraintInput, constraints)

    max_service_days = (
        data.max_service_days
        if data.max_service_days is not None
        else capacity.billable_days_after_travel
    )
    max_travel_days = (
        data.max_travel_days if data.max_travel_days is not None else capacity.travel_allowance_days
    )
    target = data.hands_on_share_target
    if target is None:
        target = estimate_hands_on_target(configs, capacity)

    tolerance = clamp(data.hands_on_share_tolerance, 0, C.MAX_HANDS_ON_TOLERANCE)
    share_min = clamp(target - tolerance, 0, 1) if target is not None else None
    share_max = clamp(target + tolerance, 0, 1) if target is not None else None
    if data.hands_on_share_target is None and hands_on_minimum is not None and hands_on_minimum > 0:
        share_min, share_max = clamp(hands_on_minimum, 0, 1), None

    comfort_floor = (
        data.comfort_buffer_min
        if data.comfort_buffer_min is not None
        else clamp(costs.buffer, 0, C.MAX_COMFORT_FLOOR)
    )

    return PortfolioConstraints(
        max_service_days=max(max_service_days, 0.0),
        max_travel_days=max(max_travel_days, 0.0),
        hands_on_share_target=target,
        hands_on_share_tolerance=tolerance,
        hands_on_share_min=share_min,
        hands_on_share_max=share_max,
        comfort_floor=clamp(comfort_floor, 0, C.MAX_COMFORT_FLOOR),
    )


def _ratios(totals: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Hands-on share and gross margin per totals row (0 when undefined)."""
    days = totals[:, SERVICE_DAYS]
    revenue = totals[:, REVENUE]
    share = np.divide(
        totals[:, HANDS_ON_DAYS], days, out=np.zeros_like(days), where=days > 0
    )
    margin = np.divide(
        revenue - totals[:, DIRECT_COST], revenue, out=np.zeros_like(revenue), where=revenue > 0
    )
    return share, margin


def constraint_masks(totals: np.ndarray, constraints: PortfolioConstraints) -> dict[str, np.ndarray]:
    """Boolean mask per portfolio rule, True where the rule is broken."""
    share, margin = _ratios(totals)
    none = np.zeros(len(totals), dtype=bool)

    masks = {
        "serviceDays": totals[:, SERVICE_DAYS] > constraints.max_service_days + C.EPSILON,
        "travelDays": (
            totals[:, TRAVEL_DAYS] > constraints.max_travel_days + C.EPSILON
            if constraints.max_travel_days > 0
            else none
        ),
        "handsOnMin": (
            share + C.EPSILON < constraints.hands_on_share_min
            if constraints.hands_on_share_min is not None
            else none
        ),
        "handsOnMax": (
            share - C.EPSILON > constraints.hands_on_share_max
            if constraints.hands_on_share_max is not None
            else none
        ),
        "comfortFloor": (
            (totals[:, REVENUE] > C.EPSILON) & (margin + C.EPSILON < constraints.comfort_floor)
            if constraints.comfort_floor > 0
            else none
        ),
    }
    return masks


def portfolio_violations(totals_row: np.ndarray, constraints: PortfolioConstraints) -> list[Violation]:
    """Portfolio-level violations of a single totals row."""
    row = totals_row.reshape(1, ROW_WIDTH)
    share, margin = _ratios(row)
    actual = {
        "serviceDays": (row[0, SERVICE_DAYS], constraints.max_service_days),
        "travelDays": (row[0, TRAVEL_DAYS], constraints.max_travel_days),
        "handsOnMin": (share[0], constraints.hands_on_share_min),
        "handsOnMax": (share[0], constraints.hands_on_share_max),
        "comfortFloor": (margin[0], constraints.comfort_floor),
    }
    messages = {
        "serviceDays": "service days {actual:.1f} exceed limit {limit:.1f}",
        "travelDays": "travel days {actual:.1f} exceed limit {limit:.1f}",
        "handsOnMin": "hands-on share {actual:.1%} below {limit:.1%}",
        "handsOnMax": "hands-on share {actual:.1%} above {limit:.1%}",
        "comfortFloor": "blended margin {actual:.1%} below comfort floor {limit:.1%}",
    }

    violations = []
    for rule, mask in constraint_masks(row, constraints).items():
        if not mask[0]:
            continue
        value, limit = actual[rule]
        violations.append(
            Violation(
                type=rule,
                limit=float(limit),
                actual=float(value),
                message=messages[rule].format(actual=float(value), limit=float(limit)),
            )
        )
    return violations


class _PrefixOdometer:
    """Walks index tuples over the leading services without recursion.

    Each yielded item is ``(indices, running_row)``. When ``threshold``
    returns a finite count, any partial prefix whose option violations
    already exceed it is skipped with its whole subtree.
    """

    def __init__(
        self,
        tables: Sequence[np.ndarray],
        block_size: int,
        threshold: Optional[Callable[[], float]] = None,
    ):
        self.tables = tables
        self.block_size = block_size
        self.threshold = threshold
        self.pruned = 0
        # Combinations below each level, including the trailing block
        self._subtree = [block_size] * (len(tables) + 1)
        for level in range(len(tables) - 1, -1, -1):
            self._subtree[level] = self._subtree[level + 1] * len(tables[level])

    def __iter__(self) -> Iterator[tuple[tuple[int, ...], np.ndarray]]:
        depth = len(self.tables)
        if depth == 0:
            yield (), np.zeros(ROW_WIDTH)
            return

        counters = [0] * depth
        partial = [np.zeros(ROW_WIDTH) for _ in range(depth + 1)]
        level = 0
        while level >= 0:
            if counters[level] >= len(self.tables[level]):
                counters[level] = 0
                level -= 1
                if level >= 0:
                    counters[level] += 1
                continue

            row = partial[level] + self.tables[level][counters[level]]
            if self.threshold is not None and row[VIOLATIONS] > self.threshold():
                self.pruned += self._subtree[level + 1]
                counters[level] += 1
                continue

            partial[level + 1] = row
            if level == depth - 1:
                yield tuple(counters), row
                counters[level] += 1
            else:
                level += 1


class PortfolioOptimizer:
    """Exhaustive top-N search over discrete service volumes.

    Example:
        >>> optimizer = PortfolioOptimizer(top_n=5)
        >>> result = optimizer.solve(configs, capacity, costs, target_net=50000)
        >>> result.best.units
    """

    def __init__(
        self,
        top_n: int = 1,
        enable_pruning: bool = True,
        block_depth: int = 2,
        max_combinations: int = 250_000,
    ):
        self.top_n = max(int(top_n), 1)
        self.enable_pruning = enable_pruning
        self.block_depth = max(int(block_depth), 1)
        self.max_combinations = max_combinations

    def solve(
        self,
        configs: Mapping[str, ServiceConfig],
        capacity: CapacityMetrics,
        costs: CostMetrics,
        target_net: float,
        tax: Optional[TaxBreakdown] = None,
        constraints: PortfolioConstraintInput | dict[str, Any] | None = None,
        progress_callback: Optional[Callable[[SearchProgress], None]] = None,
        hands_on_minimum: Optional[float] = None,
    ) -> OptimizationResult:
        """Search the best service mix for ``target_net``.

        Args:
            configs: Service configurations in search order.
            capacity: Derived capacity metrics.
            costs: Normalised costs.
            target_net: Annual net income to reach.
            tax: Solved tax breakdown (its effective rate applies under the
                Dutch regime).
            constraints: Optional portfolio limit overrides.
            progress_callback: Optional callback receiving SearchProgress.
            hands_on_minimum: Optional lower bound on the hands-on share used
                in place of the baseline band.

        Returns:
            OptimizationResult with up to ``top_n`` ranked candidates.

        Raises:
            SolverError: If the search retains no candidate.
        """
        target = max(target_net, 0.0) if target_net is not None and math.isfinite(target_net) else 0.0
        resolved = resolve_constraints(constraints, capacity, costs, configs, hands_on_minimum)
        service_ids = list(configs)

        if not service_ids or not capacity.has_capacity:
            log.info(
                "portfolio_search_degenerate",
                services=len(service_ids),
                working_weeks=capacity.working_weeks,
                target_net=target,
            )
            return self._idle_result(configs, costs, target, tax, resolved)

        options = {
            service_id: build_service_candidates(service_id, config, capacity, costs, tax)
            for service_id, config in configs.items()
        }
        tables = [self._option_table(options[service_id]) for service_id in service_ids]
        unit_values = [
            np.array([option.units_per_month for option in options[service_id]])
            for service_id in service_ids
        ]
        sizes = [len(table) for table in tables]
        combinations = math.prod(sizes)

        if combinations > self.max_combinations:
            log.warning(
                "portfolio_search_large",
                combinations=combinations,
                max_combinations=self.max_combinations,
            )
        log.info(
            "portfolio_search_started",
            services=len(service_ids),
            candidates=dict(zip(service_ids, sizes)),
            combinations=combinations,
            top_n=self.top_n,
            target_net=round(target, 2),
        )

        depth = min(self.block_depth, len(service_ids))
        prefix_count = len(service_ids) - depth
        block_rows, block_index = self._block(tables[prefix_count:])
        block_units = np.column_stack(
            [unit_values[prefix_count + j][block_index[:, j]] for j in range(depth)]
        )

        kept: list[tuple[tuple, int, tuple[int, ...], np.ndarray]] = []
        sequence = itertools.count()

        def worst_kept_violations() -> float:
            return kept[-1][0][0] if len(kept) >= self.top_n else math.inf

        odometer = _PrefixOdometer(
            tables[:prefix_count],
            len(block_rows),
            worst_kept_violations if self.enable_pruning else None,
        )
        iterations = 0
        report_every = max(1, combinations // (len(block_rows) * 100))

        for step, (prefix, running) in enumerate(odometer):
            totals = block_rows + running
            masks = constraint_masks(totals, resolved)
            violations = totals[:, VIOLATIONS] + sum(mask.astype(float) for mask in masks.values())
            net = totals[:, NET]
            gap = net - target
            meets = gap >= -C.EPSILON
            iterations += len(totals)

            if self.enable_pruning and violations.min() > worst_kept_violations():
                continue

            order = np.lexsort(
                tuple(block_units[:, j] for j in reversed(range(depth)))
                + (-net, np.abs(gap), (~meets).astype(int), violations)
            )
            prefix_units = tuple(
                float(unit_values[level][index]) for level, index in enumerate(prefix)
            )
            for row in order[: self.top_n]:
                key = rank_key_values(
                    int(violations[row]),
                    bool(meets[row]),
                    float(gap[row]),
                    float(net[row]),
                    prefix_units + tuple(float(u) for u in block_units[row]),
                )
                if len(kept) >= self.top_n and key >= kept[-1][0]:
                    break
                bisect.insort(
                    kept,
                    (key, next(sequence), prefix + tuple(int(i) for i in block_index[row]), totals[row].copy()),
                )
                del kept[self.top_n:]

            if progress_callback and step % report_every == 0:
                progress_callback(SearchProgress(iterations, combinations, len(kept)))

        if progress_callback:
            progress_callback(SearchProgress(iterations, combinations, len(kept)))

        if not kept:
            raise SolverError(f"Portfolio search over {combinations} combinations retained no candidates")

        candidates = [
            self._materialize(service_ids, options, indices, row, target, resolved)
            for _, _, indices, row in kept
        ]
        ranked = rank_candidates(candidates)
        best = ranked[0]

        log.info(
            "portfolio_search_finished",
            iterations=iterations,
            pruned=odometer.pruned,
            violations=best.violation_count,
            meets_target=best.meets_target,
            net=round(best.totals.net, 2),
        )
        return OptimizationResult(
            best=best,
            candidates=ranked,
            constraints=resolved,
            target_net=target,
            iterations=iterations,
            pruned=odometer.pruned,
            combinations=combinations,
            candidate_counts=dict(zip(service_ids, sizes)),
        )

    @staticmethod
    def _option_table(options: Sequence[ServiceCandidate]) -> np.ndarray:
        return np.array(
            [
                [
                    option.revenue,
                    option.direct_cost,
                    option.tax,
                    option.net,
                    option.service_days,
                    option.travel_days,
                    option.hands_on_days,
                    option.violation_count,
                ]
                for option in options
            ],
            dtype=float,
        ).reshape(-1, ROW_WIDTH)

    @staticmethod
    def _block(tables: Sequence[np.ndarray]) -> tuple[np.ndarray, np.ndarray]:
        """Summed rows and index tuples for the cross product of ``tables``."""
        rows = tables[0]
        for table in tables[1:]:
            rows = (rows[:, None, :] + table[None, :, :]).reshape(-1, ROW_WIDTH)
        shape = tuple(len(table) for table in tables)
        index = np.indices(shape).reshape(len(shape), -1).T
        return rows, index

    @staticmethod
    def _totals(row: np.ndarray, target: float) -> PortfolioTotals:
        share, margin = _ratios(row.reshape(1, ROW_WIDTH))
        net = float(row[NET])
        return PortfolioTotals(
            revenue=float(row[REVENUE]),
            direct_cost=float(row[DIRECT_COST]),
            tax=float(row[TAX]),
            net=net,
            service_days=float(row[SERVICE_DAYS]),
            travel_days=float(row[TRAVEL_DAYS]),
            hands_on_days=float(row[HANDS_ON_DAYS]),
            hands_on_share=float(share[0]),
            gross_margin=float(margin[0]),
            target_net=target,
            net_gap=net - target,
        )

    def _materialize(
        self,
        service_ids: Sequence[str],
        options: Mapping[str, Sequence[ServiceCandidate]],
        indices: Sequence[int],
        row: np.ndarray,
        target: float,
        constraints: PortfolioConstraints,
    ) -> PortfolioCandidate:
        mix = {
            service_id: options[service_id][index]
            for service_id, index in zip(service_ids, indices)
        }
        violations = [v for option in mix.values() for v in option.violations]
        violations.extend(portfolio_violations(row, constraints))
        totals = self._totals(row, target)
        return PortfolioCandidate(
            mix=mix,
            totals=totals,
            violations=violations,
            meets_target=totals.net_gap >= -C.EPSILON,
        )

    def _idle_result(
        self,
        configs: Mapping[str, ServiceConfig],
        costs: CostMetrics,
        target: float,
        tax: Optional[TaxBreakdown],
        constraints: PortfolioConstraints,
    ) -> OptimizationResult:
        """Zero-volume mix for a year without services or working time."""
        dutch_rate = (
            tax.effective_tax_rate
            if tax is not None and tax.mode == C.TAX_MODE_DUTCH_2025
            else None
        )
        mix = {}
        for service_id, config in configs.items():
            mix[service_id] = ServiceCandidate(
                service_id=service_id,
                units_per_month=0.0,
                annual_units=0.0,
                service_days=0.0,
                price_per_unit=resolve_price_per_unit(config, costs).value,
                revenue=0.0,
                direct_cost=0.0,
                tax_rate=resolve_tax_rate(config, costs, dutch_rate).value,
                tax=0.0,
                net=0.0,
                gross_margin=0.0,
                fixed_cost_share=0.0,
                variable_cost_share=0.0,
                hands_on_weight=resolve_hands_on_weight(service_id, config).value,
                pricing_floor=resolve_pricing_floor(config).value,
                pricing_ceiling=resolve_pricing_ceiling(config).value,
                comfort_floor=resolve_comfort_floor(config, costs).value,
            )
        candidate = PortfolioCandidate(
            mix=mix,
            totals=self._totals(np.zeros(ROW_WIDTH), target),
            violations=[],
            meets_target=target <= 0,
        )
        return OptimizationResult(
            best=candidate,
            candidates=[candidate],
            constraints=constraints,
            target_net=target,
            candidate_counts={service_id: 1 for service_id in configs},
        )
