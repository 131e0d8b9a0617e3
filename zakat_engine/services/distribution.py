"""Allocation of zakat due across the eight asnaf categories.

Percentages always sum to 100. Every mutation builds the complete new set of
eight allocations first and then publishes it with a single assignment under
the allocator's lock, so readers never observe a half-updated table.
"""
import logging
import math
import threading
from dataclasses import dataclass, replace

from zakat_engine.constants import (
    AMOUNT_TOLERANCE,
    DEFAULT_DISTRIBUTION_MODE,
    PERCENTAGE_TOLERANCE,
    SCHOLAR_DISTRIBUTION,
    STARTING_DISTRIBUTION_MODES,
)
from zakat_engine.data.asnaf import ASNAF_IDS, get_asnaf_name, is_valid_asnaf
from zakat_engine.errors import InvalidPolicy, UnknownRecipientCategory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DistributionAllocation:
    category_id: str
    percentage: float
    amount: float = 0.0
    notes: str = ''

    def to_dict(self) -> dict:
        return {
            'category_id': self.category_id,
            'name': get_asnaf_name(self.category_id),
            'percentage': round(self.percentage, 4),
            'amount': round(self.amount, 2),
            'notes': self.notes,
        }


def validate_scholar_weights(weights: dict) -> dict[str, float]:
    """Check a scholar table: one non-negative weight per asnaf, summing to 100."""
    if not isinstance(weights, dict):
        raise InvalidPolicy('Scholar weights must be a mapping of category id to percentage')
    if set(weights) != set(ASNAF_IDS):
        missing = sorted(set(ASNAF_IDS) - set(weights))
        extra = sorted(set(weights) - set(ASNAF_IDS))
        raise InvalidPolicy(f'Scholar weights must cover exactly the eight asnaf (missing={missing}, extra={extra})')
    cleaned = {}
    for category_id in ASNAF_IDS:
        weight = weights[category_id]
        if isinstance(weight, bool) or not isinstance(weight, (int, float)) or not math.isfinite(weight):
            raise InvalidPolicy(f'Scholar weight for {category_id} is not a number: {weight!r}')
        if weight < 0:
            raise InvalidPolicy(f'Scholar weight for {category_id} is negative: {weight}')
        cleaned[category_id] = float(weight)
    if abs(sum(cleaned.values()) - 100) > PERCENTAGE_TOLERANCE:
        raise InvalidPolicy(f'Scholar weights sum to {sum(cleaned.values())}, expected 100')
    return cleaned


def _equal_percentages() -> dict[str, float]:
    return {category_id: 100 / len(ASNAF_IDS) for category_id in ASNAF_IDS}


def _settle(percentages: dict[str, float], keep: str | None = None) -> dict[str, float]:
    """Fold floating-point residue into one category so the sum is exactly 100."""
    residual = 100 - sum(percentages.values())
    if residual == 0:
        return percentages
    candidates = [c for c in ASNAF_IDS if c != keep] or list(ASNAF_IDS)
    target = max(candidates, key=lambda c: percentages[c])
    percentages[target] = max(0.0, percentages[target] + residual)
    return percentages


class DistributionAllocator:
    """Holds the distribution table for one zakat amount.

    Args:
        total_zakat_due: Amount being distributed
        scholar_weights: Optional replacement for the default scholar table
    """

    def __init__(self, total_zakat_due: float = 0.0, scholar_weights: dict | None = None):
        self._lock = threading.Lock()
        self._scholar_weights = validate_scholar_weights(
            scholar_weights if scholar_weights is not None else SCHOLAR_DISTRIBUTION
        )
        self._total_zakat_due = self._clean_amount(total_zakat_due)
        self._mode = DEFAULT_DISTRIBUTION_MODE
        self._allocations = self._build(_equal_percentages(), {})

    @staticmethod
    def _clean_amount(amount) -> float:
        if isinstance(amount, bool) or not isinstance(amount, (int, float)) or not math.isfinite(amount) or amount < 0:
            logger.warning(f"Invalid zakat due {amount!r}; using 0")
            return 0.0
        return float(amount)

    def _build(self, percentages: dict[str, float], notes: dict[str, str]) -> dict[str, DistributionAllocation]:
        due = self._total_zakat_due
        return {
            category_id: DistributionAllocation(
                category_id=category_id,
                percentage=percentages[category_id],
                amount=percentages[category_id] / 100 * due,
                notes=notes.get(category_id, ''),
            )
            for category_id in ASNAF_IDS
        }

    def _notes(self) -> dict[str, str]:
        return {category_id: a.notes for category_id, a in self._allocations.items()}

    def _percentages(self) -> dict[str, float]:
        return {category_id: a.percentage for category_id, a in self._allocations.items()}

    @staticmethod
    def _check_category(category_id: str):
        if not is_valid_asnaf(category_id):
            raise UnknownRecipientCategory(category_id)

    @property
    def total_zakat_due(self) -> float:
        return self._total_zakat_due

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def scholar_weights(self) -> dict[str, float]:
        return dict(self._scholar_weights)

    def allocations(self) -> list[DistributionAllocation]:
        """Current allocations in asnaf order."""
        snapshot = self._allocations
        return [snapshot[category_id] for category_id in ASNAF_IDS]

    def get_allocation(self, category_id: str) -> DistributionAllocation:
        self._check_category(category_id)
        return self._allocations[category_id]

    def distribute_equally(self):
        with self._lock:
            self._allocations = self._build(_equal_percentages(), self._notes())
            self._mode = 'equal'

    def distribute_by_scholar(self):
        with self._lock:
            self._allocations = self._build(dict(self._scholar_weights), self._notes())
            self._mode = 'scholar'

    def _set_percentage_locked(self, category_id: str, percentage: float):
        """Pin category_id at percentage. The caller holds the lock."""
        percentage = min(100.0, max(0.0, percentage))
        current = self._percentages()
        others =[c for c in ASNAF_IDS if c != category_id]
        others_sum = sum(current[c] for c in others)
        remainder = 100 - percentage

        updated = {category_id: percentage}
        if others_sum > 0:
            scale = remainder / others_sum
            for c in others:
                updated[c] = current[c] * scale
        else:
            for c in others:
                updated[c] = remainder / len(others)

        self._allocations = self._build(_settle(updated, keep=category_id), self._notes())
        self._mode = 'custom'
        logger.debug(f"Set {category_id} to {percentage}%")

    def set_allocation_percentage(self, category_id: str, percentage: float):
        """Pin one category's percentage and rescale the other seven to fill the rest.

        The other categories keep their relative proportions. When they are
        all zero the remainder is split equally between them.
        """
        self._check_category(category_id)
        if isinstance(percentage, bool) or not isinstance(percentage, (int, float)) or not math.isfinite(percentage):
            logger.warning(f"Ignoring non-numeric percentage {percentage!r} for {category_id}")
            return
        with self._lock:
            self._set_percentage_locked(category_id, float(percentage))

    def set_allocation_amount(self, category_id: str, amount: float):
        """Set a category by amount; converted to a percentage of the current due."""
        self._check_category(category_id)
        amount = self._clean_amount(amount)
        with self._lock:
            due = self._total_zakat_due
            if due <= 0:
                logger.warning(f"Cannot allocate an amount to {category_id} with no zakat due")
                return
            self._set_percentage_locked(category_id, amount / due * 100)

    def set_total_zakat_due(self, amount: float):
        """Change the amount being distributed; percentages are left alone."""
        with self._lock:
            self._total_zakat_due = self._clean_amount(amount)
            self._allocations = self._build(self._percentages(), self._notes())

    def set_notes(self, category_id: str, notes: str):
        self._check_category(category_id)
        with self._lock:
            allocations = dict(self._allocations)
            allocations[category_id] = replace(allocations[category_id], notes=str(notes or ''))
            self._allocations = allocations

    def reset(self):
        """Back to the equal split with notes cleared."""
        with self._lock:
            self._allocations = self._build(_equal_percentages(), {})
            self._mode = DEFAULT_DISTRIBUTION_MODE

    def summary(self) -> dict:
        allocations = self.allocations()
        total_allocated = sum(a.amount for a in allocations)
        total_percentage = sum(a.percentage for a in allocations)
        remaining = self._total_zakat_due - total_allocated
        return {
            'total_zakat_due': round(self._total_zakat_due, 2),
            'total_allocated': round(total_allocated, 2),
            'total_percentage': round(total_percentage, 6),
            'remaining': round(remaining, 2),
            'is_complete': abs(remaining) < AMOUNT_TOLERANCE,
        }

    def to_dict(self) -> dict:
        return {
            'mode': self._mode,
            'allocations': [a.to_dict() for a in self.allocations()],
            'summary': self.summary(),
        }


def plan_distribution(
    total_zakat_due: float,
    mode: str = DEFAULT_DISTRIBUTION_MODE,
    edits: list | None = None,
    scholar_weights: dict | None = None,
) -> DistributionAllocator:
    """Build an allocator for total_zakat_due and apply a mode plus edits.

    Each edit is {'category_id': ..., 'percentage' | 'amount': ..., 'notes': ...}
    and is applied in order after the mode. 'custom' is not a starting mode;
    the allocator reports it once an edit changes a percentage.
    """
    if mode not in STARTING_DISTRIBUTION_MODES:
        raise InvalidPolicy(
            f"Invalid distribution mode: {mode!r}. Must be one of {', '.join(STARTING_DISTRIBUTION_MODES)}"
        )
    allocator = DistributionAllocator(total_zakat_due, scholar_weights=scholar_weights)
    if mode == 'scholar':
        allocator.distribute_by_scholar()

    for edit in edits or []:
        if not isinstance(edit, dict):
            logger.warning(f"Ignoring malformed distribution edit {edit!r}")
            continue
        category_id = edit.get('category_id')
        if 'percentage' in edit:
            allocator.set_allocation_percentage(category_id, edit['percentage'])
        elif 'amount' in edit:
            allocator.set_allocation_amount(category_id, edit['amount'])
        if 'notes' in edit:
            allocator.set_notes(category_id, edit['notes'])
    return allocator
