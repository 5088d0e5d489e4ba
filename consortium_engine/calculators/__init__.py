"""
Calculators Package

Provides all calculation components for consortium simulations.
"""

from .bids import BidResolver
from .post_contemplation import PostContemplationCalculator
from .pre_contemplation import PreContemplationCalculator
from .rules import RuleResolver, SegmentRule
from .statement import StatementBuilder

__all__ = [
    "RuleResolver",
    "SegmentRule",
    "PreContemplationCalculator",
    "BidResolver",
    "PostContemplationCalculator",
    "StatementBuilder",
]
