"""
Tajweed rule lookup for mistake categorisation.
Rules per expected word: rule names (Madd, Ghunnah, Qalqalah, Heavy_Light) and severity.
"""
from tajweed.rules import (
    detect_word_tajweed_rules,
    lookup_tajweed_rules,
    rule_severity,
    tajweed_rule_accuracy,
)

__all__ = [
    "detect_word_tajweed_rules",
    "lookup_tajweed_rules",
    "rule_severity",
    "tajweed_rule_accuracy",
]
