"""Combine normalized sections into an immutable :class:`ParseResult`."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from estimate_import.core.models import (
    ClaimInfo,
    Customer,
    EstimateLine,
    Identities,
    ParseMeta,
    ParseResult,
    Totals,
    Vehicle,
)
from estimate_import.ingestion.tracker import UnknownElementTracker
from estimate_import.processing.rules import derive_parts

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalizedEstimate:
    """Everything a record normalizer produces for one document."""

    identities: Identities
    customer: Customer
    vehicle: Vehicle
    claim: ClaimInfo
    lines: Tuple[EstimateLine, ...]
    totals: Totals
    source_system: str
    source_format: str
    document_type: str
    created_at: Optional[datetime] = None


def assemble(
    normalized: NormalizedEstimate,
    tracker: UnknownElementTracker,
    import_timestamp: datetime,
) -> ParseResult:
    """Derive parts, attach metadata and freeze the result."""

    parts = derive_parts(normalized.lines)
    meta = ParseMeta(
        source_system=normalized.source_system,
        import_timestamp=import_timestamp,
        unknown_tags=tracker.as_tuple(),
        source_format=normalized.source_format,
        document_type=normalized.document_type,
        created_at=normalized.created_at,
    )
    if meta.unknown_tags:
        logger.warning(
            "%s document %s has %d unknown element(s)",
            normalized.source_format,
            normalized.identities.document_number or "<no id>",
            len(meta.unknown_tags),
        )
    return ParseResult(
        identities=normalized.identities,
        customer=normalized.customer,
        vehicle=normalized.vehicle,
        claim=normalized.claim,
        lines=normalized.lines,
        parts=parts,
        totals=normalized.totals,
        meta=meta,
    )
