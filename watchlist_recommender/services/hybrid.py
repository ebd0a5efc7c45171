"""Hybrid Recommendation Algorithm"""

from typing import Dict, Iterable, List, Mapping, Optional

from ..schemas.recommendation import AlgorithmType
from ..utils.logging import get_logger
from .scoring import Candidate, ScorerResult, rank_candidates

logger = get_logger(__name__)

# Order in which strategy outputs are merged
STRATEGY_ORDER = (
    AlgorithmType.CONTENT_BASED,
    AlgorithmType.COLLABORATIVE,
    AlgorithmType.MATRIX_FACTORIZATION,
    AlgorithmType.CLUSTERING,
    AlgorithmType.TEMPORAL,
    AlgorithmType.TREND_BASED,
    AlgorithmType.PERSONALIZED,
)


class HybridCombiner:
    """
    Weighted combination of the individual strategies

    Each strategy's scores are multiplied by its weight and merged by item.
    An item that only one strategy produced keeps that strategy's tag; an
    item produced by two or more strategies is tagged HYBRID and carries the
    sum of the weighted scores.
    """

    def __init__(self, weights: Mapping[AlgorithmType, float]):
        self.weights = dict(weights)

    def weight_for(self, algorithm: AlgorithmType) -> float:
        if algorithm == AlgorithmType.HYBRID:
            raise ValueError("HYBRID output cannot be combined again")
        if algorithm not in self.weights:
            raise KeyError(f"No combination weight configured for {algorithm.value}")
        return self.weights[algorithm]

    def combine(self, results: Iterable[ScorerResult], limit: Optional[int] = None) -> List[Candidate]:
        """
        Merge strategy outputs into one ranked list

        Args:
            results: One ScorerResult per strategy, in merge order; failed
                results contribute nothing
            limit: Maximum number of merged candidates to keep

        Returns:
            Candidates sorted by score descending, item id ascending on ties
        """

        merged: Dict[int, Candidate] = {}

        for result in results:
            if not result.ok:
                continue

            weight = self.weight_for(result.algorithm)
            for candidate in result.candidates:
                weighted = candidate.score * weight
                existing = merged.get(candidate.item_id)

                if existing is None:
                    merged[candidate.item_id] = Candidate(
                        item_id=candidate.item_id,
                        score=weighted,
                        algorithm=result.algorithm,
                        item=candidate.item,
                    )
                else:
                    existing.score += weighted
                    existing.algorithm = AlgorithmType.HYBRID
                    if existing.item is None:
                        existing.item = candidate.item

        combined = rank_candidates(merged.values(), limit)
        logger.debug("Combined strategy outputs", merged=len(merged), returned=len(combined))
        return combined

    def explain(self, results: Iterable[ScorerResult], item_id: int) -> Dict[str, float]:
        """
        Per-strategy contributions to one item's combined score

        Returns:
            Mapping of ``<algorithm>_raw_score`` and ``<algorithm>_contribution``
            for each strategy that produced the item, plus ``final_score``
        """

        explanation: Dict[str, float] = {}
        final_score = 0.0

        for result in results:
            if not result.ok:
                continue

            for candidate in result.candidates:
                if candidate.item_id != item_id:
                    continue

                key = result.algorithm.value.lower()
                contribution = candidate.score * self.weight_for(result.algorithm)
                explanation[f"{key}_raw_score"] = candidate.score
                explanation[f"{key}_contribution"] = contribution
                final_score += contribution

        explanation["final_score"] = final_score
        return explanation
