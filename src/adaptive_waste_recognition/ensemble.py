"""Ensemble consolidation of strategy candidates."""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Sequence

from .errors import ConsolidationInconsistency
from .types import STRATEGY_RANK, ConsolidatedDetection, Detection, Region

logger = logging.getLogger(__name__)

AGREEMENT_BONUS = 0.05
STRONG_AGREEMENT_BONUS = 0.1
MAX_CONFIDENCE = 0.95


def rank_candidates(candidates: Iterable[Detection]) -> List[Detection]:
    """Order by confidence, strongest first, ties broken by strategy rank.

    Category and name settle ties within one strategy, so the order never
    depends on the order candidates arrived in.
    """

    return sorted(
        candidates,
        key=lambda c: (-c.confidence, STRATEGY_RANK[c.strategy], c.category, c.object_name),
    )


def consolidate(
    candidates: Sequence[Detection],
    regions: Optional[Sequence[Region]] = None,
) -> List[ConsolidatedDetection]:
    """Collapse the candidates of every region into one detection.

    The strongest candidate leads; agreeing strategies add a bonus of 0.05,
    or 0.1 when three or more weighed in. When ``regions`` is given, output
    follows region order and candidates for unknown regions are dropped.
    """

    groups: Dict[str, List[Detection]] = {}
    for candidate in candidates:
        groups.setdefault(candidate.region_id, []).append(candidate)

    if regions is not None:
        known = OrderedDict((region.id, region) for region in regions)
        orphans = [region_id for region_id in groups if region_id not in known]
        for region_id in orphans:
            error = ConsolidationInconsistency(
                f"{len(groups[region_id])} candidates reference unknown region {region_id!r}"
            )
            logger.warning("Discarding orphaned candidates: %s", error)
            del groups[region_id]
        order = [region_id for region_id in known if region_id in groups]
    else:
        known = OrderedDict()
        order = sorted(groups)

    consolidated: List[ConsolidatedDetection] = []
    for region_id in order:
        region = known.get(region_id)
        consolidated.append(
            _merge(groups[region_id], region.bounding_box if region is not None else None)
        )

    logger.debug("Consolidated %d candidates into %d detections", len(candidates), len(consolidated))
    return consolidated


def _merge(group: Sequence[Detection], bounding_box) -> ConsolidatedDetection:
    ranked = rank_candidates(group)
    primary = ranked[0]

    if len(ranked) == 1:
        return ConsolidatedDetection(
            region_id=primary.region_id,
            strategy=primary.strategy,
            category=primary.category,
            confidence=primary.confidence,
            method=primary.method,
            object_name=primary.object_name,
            features=primary.features,
            disposal=primary.disposal,
            needs_learning=primary.needs_learning,
            ensemble_size=1,
            bounding_box=bounding_box,
        )

    bonus = STRONG_AGREEMENT_BONUS if len(ranked) >= 3 else AGREEMENT_BONUS
    features: List[str] = []
    for candidate in ranked:
        for feature in candidate.features:
            if feature not in features:
                features.append(feature)

    return ConsolidatedDetection(
        region_id=primary.region_id,
        strategy=primary.strategy,
        category=primary.category,
        confidence=min(primary.confidence + bonus, MAX_CONFIDENCE),
        method="ensemble",
        object_name=primary.object_name,
        features=tuple(features),
        disposal=primary.disposal,
        needs_learning=primary.needs_learning,
        ensemble_size=len(ranked),
        bounding_box=bounding_box,
    )
