"""Exact symbolic calculator engine."""

from .MathEngine import Evaluation, Trace, evaluate
from .DecimalProjector import Refusal
from .error import MathError

__all__ = ["evaluate", "Evaluation", "Trace", "Refusal", "MathError"]
