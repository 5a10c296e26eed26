"""
Explanation module for the visual_extract package.
"""

from visual_extract.explanation.service import (
    EMPTY_EXPLANATION_FALLBACK,
    ERROR_EXPLANATION_FALLBACK,
    ElementExplainer,
    ExplanationResult,
)

__all__ = [
    "ElementExplainer",
    "ExplanationResult",
    "EMPTY_EXPLANATION_FALLBACK",
    "ERROR_EXPLANATION_FALLBACK",
]
