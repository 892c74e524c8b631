"""Detection layer - Swap classification, matching and first mentions."""

from whale_swap_tracker.detector.classifier import SwapClassifier
from whale_swap_tracker.detector.evaluator import MatchEvaluator
from whale_swap_tracker.detector.first_mention import FirstMentionDetector
from whale_swap_tracker.detector.history import (
    DeliveryHistory,
    InMemoryDeliveryHistory,
    RedisDeliveryHistory,
)
from whale_swap_tracker.detector.models import MatchResult

__all__ = [
    "DeliveryHistory",
    "FirstMentionDetector",
    "InMemoryDeliveryHistory",
    "MatchEvaluator",
    "MatchResult",
    "RedisDeliveryHistory",
    "SwapClassifier",
]
