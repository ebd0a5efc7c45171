"""Business Rules Engine for reranking recommendations"""

from collections import Counter
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..models import Item, User, UserBehavior, WatchListEntry
from ..utils.logging import get_logger
from .data_access import ENGAGEMENT_VALUES, get_items
from .scoring import Candidate, rank_candidates

logger = get_logger(__name__)


class RuleType(str, Enum):
    """Types of business rules"""
    FILTER = "filter"  # Remove items from recommendations
    BOOST = "boost"    # Increase score of items
    RERANK = "rerank"  # Change ranking order


def dominant_category(db: Session, user_id: int) -> Optional[str]:
    """
    The category the user engages with most

    Counted over the categories of items behind the user's engagement
    events; when those yield nothing, over the user's watch-list items.
    Ties go to the alphabetically first category.
    """

    rows = (
        db.query(Item.category)
        .join(UserBehavior, UserBehavior.item_id == Item.id)
        .filter(
            UserBehavior.user_id == user_id,
            UserBehavior.behavior_type.in_(ENGAGEMENT_VALUES),
            Item.category.isnot(None),
        )
        .all()
    )
    counts = Counter(category for (category,) in rows)

    if not counts:
        rows = (
            db.query(Item.category)
            .join(WatchListEntry, WatchListEntry.item_id == Item.id)
            .filter(WatchListEntry.user_id == user_id, Item.category.isnot(None))
            .all()
        )
        counts = Counter(category for (category,) in rows)

    if not counts:
        return None

    category, _ = min(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return category


class BusinessRule:
    """Base class for business rules"""

    def __init__(self, name: str, rule_type: RuleType, priority: int = 0):
        self.name = name
        self.rule_type = rule_type
        self.priority = priority  # Higher priority rules execute first

    def apply(
        self,
        candidates: List[Candidate],
        user: User,
        context: Dict[str, Any],
        db: Session
    ) -> List[Candidate]:
        """
        Apply the business rule

        Args:
            candidates: Combined candidates
            user: User object
            context: Additional context (e.g., limit)
            db: Database session

        Returns:
            Modified list of candidates
        """
        raise NotImplementedError


class CategoryFocusRule(BusinessRule):
    """Keep only the user's dominant category and boost what remains"""

    def __init__(self, boost_factor: float = 1.5):
        super().__init__("category_focus", RuleType.RERANK, priority=50)
        self.boost_factor = boost_factor

    def apply(
        self,
        candidates: List[Candidate],
        user: User,
        context: Dict[str, Any],
        db: Session
    ) -> List[Candidate]:
        limit = context.get("limit")

        category = dominant_category(db, user.id)
        if category is None:
            return rank_candidates(candidates, limit)

        missing = [c.item_id for c in candidates if c.item is None]
        loaded = get_items(db, missing)
        for candidate in candidates:
            if candidate.item is None:
                candidate.item = loaded.get(candidate.item_id)

        focused = []
        for candidate in candidates:
            if candidate.item is None or candidate.item.category != category:
                continue
            candidate.score *= self.boost_factor
            focused.append(candidate)

        logger.debug(
            "Applied category focus",
            user_id=user.id,
            category=category,
            kept=len(focused),
            dropped=len(candidates) - len(focused),
        )
        return rank_candidates(focused, limit)


class BusinessRulesEngine:
    """
    Main engine for applying business rules to recommendations
    """

    def __init__(self, db: Session, rules: Optional[List[BusinessRule]] = None):
        self.db = db
        self.rules: List[BusinessRule] = []
        for rule in rules if rules is not None else [CategoryFocusRule()]:
            self.add_rule(rule)

    def add_rule(self, rule: BusinessRule):
        """Add a business rule"""
        self.rules.append(rule)
        # Sort by priority (descending)
        self.rules.sort(key=lambda r: r.priority, reverse=True)
        logger.info("Added business rule", rule=rule.name, priority=rule.priority)

    def remove_rule(self, rule_name: str):
        """Remove a business rule by name"""
        self.rules = [r for r in self.rules if r.name != rule_name]
        logger.info("Removed business rule", rule=rule_name)

    def apply_rules(
        self,
        candidates: List[Candidate],
        user: User,
        context: Optional[Dict[str, Any]] = None,
        rule_types: Optional[List[RuleType]] = None
    ) -> List[Candidate]:
        """
        Apply all business rules to candidates

        Args:
            candidates: Combined candidates
            user: User object
            context: Additional context
            rule_types: Optional filter for rule types to apply

        Returns:
            Filtered and modified candidates, sorted by score
        """
        context = context or {}

        result = candidates
        for rule in self.rules:
            # Skip if rule type filter is specified and doesn't match
            if rule_types and rule.rule_type not in rule_types:
                continue

            before_count = len(result)
            result = rule.apply(result, user, context, self.db)

            if before_count != len(result):
                logger.debug(
                    "Rule changed candidate count",
                    rule=rule.name,
                    before=before_count,
                    after=len(result),
                )

        return rank_candidates(result, context.get("limit"))

    def get_rules_summary(self) -> List[Dict[str, Any]]:
        """Get summary of all active rules"""
        return [
            {
                "name": rule.name,
                "type": rule.rule_type.value,
                "priority": rule.priority
            }
            for rule in self.rules
        ]
