"""StudyGen question generation service."""

from studygen.generator import QuestionGenerator
from studygen.insights import InsightsGenerator
from studygen.models import GenerationRequest, GenerationResponse, InsightsResult

__version__ = "0.1.0"

__all__ = [
    "GenerationRequest",
    "GenerationResponse",
    "InsightsGenerator",
    "InsightsResult",
    "QuestionGenerator",
]
