"""Latent-factor style scoring over the user-item interaction matrix"""

import numpy as np
from typing import Dict, List

from ..models import User, UserBehavior
from ..schemas.recommendation import AlgorithmType
from ..utils.logging import get_logger
from .scoring import BaseScorer, Candidate, behavior_weight

logger = get_logger(__name__)

SCORE_SCALE = 100.0


class MatrixFactorizationScorer(BaseScorer):
    """
    Crude factor estimation on the interaction matrix

    The user factor is the user's own row and the item factor is the
    column sum across all users; their product, scaled down by 100, is the
    item's score. No decomposition is performed.
    """

    algorithm = AlgorithmType.MATRIX_FACTORIZATION

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_item_matrix = None
        self.user_id_to_idx: Dict[int, int] = {}
        self.item_id_to_idx: Dict[int, int] = {}
        self.idx_to_item_id: Dict[int, int] = {}

    def build_user_item_matrix(self) -> np.ndarray:
        """Build user-item matrix of summed, undecayed behavior weights"""

        behaviors = self.db.query(UserBehavior).all()

        user_ids = sorted({b.user_id for b in behaviors})
        item_ids = sorted({b.item_id for b in behaviors})

        self.user_id_to_idx = {user_id: idx for idx, user_id in enumerate(user_ids)}
        self.item_id_to_idx = {item_id: idx for idx, item_id in enumerate(item_ids)}
        self.idx_to_item_id = {v: k for k, v in self.item_id_to_idx.items()}

        matrix = np.zeros((len(user_ids), len(item_ids)))
        for behavior in behaviors:
            user_idx = self.user_id_to_idx[behavior.user_id]
            item_idx = self.item_id_to_idx[behavior.item_id]
            matrix[user_idx, item_idx] += behavior_weight(behavior.behavior_type)

        self.user_item_matrix = matrix
        return matrix

    def user_factors(self, user_id: int) -> np.ndarray:
        """The user's row of the matrix (zeros for an unknown user)"""

        user_idx = self.user_id_to_idx.get(user_id)
        if user_idx is None:
            return np.zeros(len(self.item_id_to_idx))
        return self.user_item_matrix[user_idx]

    def item_factors(self) -> np.ndarray:
        """Column sums across all users"""
        return self.user_item_matrix.sum(axis=0)

    def get_recommendations(self, user: User, limit: int) -> List[Candidate]:
        """
        Get factor-based recommendations for a user

        Args:
            user: Target user
            limit: Number of recommendations to return

        Returns:
            Candidates scoring at least ``min_factorization_score``
        """

        self.build_user_item_matrix()
        if self.user_item_matrix.size == 0 or user.id not in self.user_id_to_idx:
            return []

        scores = self.user_factors(user.id) * self.item_factors() / SCORE_SCALE

        candidates = []
        for item_idx, raw_score in enumerate(scores):
            score = round(float(raw_score), 4)
            if score >= self.config.min_factorization_score:
                candidates.append(self._raw_candidate(self.idx_to_item_id[item_idx], score))

        logger.debug("Factorization candidates", user_id=user.id, count=len(candidates))
        return self._top(candidates, limit)
