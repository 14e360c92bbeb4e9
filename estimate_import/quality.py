"""Lightweight quality checks to flag imported estimates for manual review."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List

from estimate_import.core.models import LINE_LABOR, LINE_PART, ZERO, EstimateLine, ParseResult
from estimate_import.ingestion.loader import LoadedEstimate

logger = logging.getLogger(__name__)

AUTO_VALID = "auto_valid"
NEEDS_REVIEW = "needs_review"
TOLERANCE = Decimal("0.01")

_TOTAL_FOR_LINE_TYPE = {LINE_PART: "parts_total", LINE_LABOR: "labor_total"}


@dataclass(frozen=True)
class ReviewedEstimate:
    loaded: LoadedEstimate
    status: str
    issues: List[str] = field(default_factory=list)

    @property
    def result(self) -> ParseResult:
        return self.loaded.result

    @property
    def notes(self) -> str:
        return "; ".join(self.issues)


def _line_amount(line: EstimateLine) -> Decimal:
    if line.part_info is not None:
        return line.part_info.price * line.part_info.quantity
    if line.labor_info is not None:
        return line.labor_info.hours * line.labor_info.rate
    return line.detail.price


def _line_sums(result: ParseResult) -> Dict[str, Decimal]:
    sums = {"parts_total": ZERO, "labor_total": ZERO, "materials_total": ZERO}
    for line in result.lines:
        key = _TOTAL_FOR_LINE_TYPE.get(line.line_type, "materials_total")
        sums[key] += _line_amount(line)
    return sums


def validate_result(result: ParseResult) -> List[str]:
    """Return a list of quality issues for a single parsed estimate."""

    issues: List[str] = []

    # Identity fields are what ties an import back to a repair order.
    if not result.identities.vin:
        issues.append("missing VIN")
    if not result.identities.document_number:
        issues.append("missing document number")

    if not result.lines:
        issues.append("no estimate lines")
    if result.meta.unknown_tags:
        issues.append(f"{len(result.meta.unknown_tags)} unknown element(s)")

    totals = result.totals
    for name, computed in _line_sums(result).items():
        declared = getattr(totals, name)
        if declared and abs(declared - computed) > TOLERANCE:
            issues.append(f"{name} {declared} does not match line sum {computed}")

    categories = totals.parts_total + totals.labor_total + totals.materials_total
    if totals.gross_total and abs(totals.gross_total - categories) > TOLERANCE:
        issues.append(f"gross_total {totals.gross_total} does not match category totals {categories}")

    return issues


def review_estimates(loaded: Iterable[LoadedEstimate]) -> List[ReviewedEstimate]:
    """Annotate each estimate with a status and the issues found."""

    reviewed: List[ReviewedEstimate] = []
    for item in loaded:
        issues = validate_result(item.result)
        status = AUTO_VALID if not issues else NEEDS_REVIEW
        if issues:
            logger.warning("Quality issues for %s: %s", item.source_name, "; ".join(issues))
        reviewed.append(ReviewedEstimate(loaded=item, status=status, issues=issues))
    return reviewed
