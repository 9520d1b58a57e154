"""Generation loop subsystem for lm-decoder.

Builds the context window, calls the scorer, applies the decoding strategy
and evaluates the stopping policy, one token at a time.
"""

from lm_decoder.generation.background import BackgroundGeneration
from lm_decoder.generation.entry_points import generate_text, stream
from lm_decoder.generation.loop import TextGenerator
from lm_decoder.generation.types import (
    GeneratedToken,
    GenerationResult,
    GenerationRun,
    GenerationState,
)

__all__ = [
    "BackgroundGeneration",
    "GeneratedToken",
    "GenerationResult",
    "GenerationRun",
    "GenerationState",
    "TextGenerator",
    "generate_text",
    "stream",
]
