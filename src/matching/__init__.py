"""
Person matching and reconciliation against the national registry.

This module handles:
- Building search query cascades from a person's demographics
- Selecting versioned search strategies
- Screening input data quality before any registry call
- Matching and confidence banding of registry results
- Reconciling local demographics and NHS numbers with the registry
"""

from src.matching.engine import MatchingConfig, MatchingEngine
from src.matching.nhs_number import is_valid_nhs_number
from src.matching.reconciliation import ReconciliationEngine
from src.matching.strategies import get_strategy

__all__ = [
    "MatchingConfig",
    "MatchingEngine",
    "ReconciliationEngine",
    "get_strategy",
    "is_valid_nhs_number",
]
