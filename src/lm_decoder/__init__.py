"""lm-decoder: autoregressive decoding against a fixed-window next-token scorer.

Repeatedly scores a fixed-length context window, picks the next token with
a configurable decoding strategy (greedy, top-k, nucleus, threshold-draw
top-p), appends it and stops on a callback, a stop token or a token budget.
The scorer and tokenizer are supplied by the caller.
"""

from __future__ import annotations

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("lm-decoder")
except PackageNotFoundError:
    __version__ = "0.0.0"

from lm_decoder.config import DecoderConfig, resolve_config, validate_overrides
from lm_decoder.exceptions import ConfigurationError, DecoderError, ScorerError, ShapeError
from lm_decoder.generation import (
    BackgroundGeneration,
    GenerationResult,
    GenerationState,
    TextGenerator,
    generate_text,
    stream,
)
from lm_decoder.interfaces import Scorer, Tokenizer
from lm_decoder.sampling import build_rng, multinomial_sample, softmax
from lm_decoder.strategies import (
    GreedyStrategy,
    StrategyRegistry,
    TopKStrategy,
    TopPRandomStrategy,
    TopPStrategy,
)
from lm_decoder.window import ContextWindow, build_window

__all__ = [
    "BackgroundGeneration",
    "ConfigurationError",
    "ContextWindow",
    "DecoderConfig",
    "DecoderError",
    "GenerationResult",
    "GenerationState",
    "GreedyStrategy",
    "ScorerError",
    "Scorer",
    "ShapeError",
    "StrategyRegistry",
    "TextGenerator",
    "Tokenizer",
    "TopKStrategy",
    "TopPRandomStrategy",
    "TopPStrategy",
    "__version__",
    "build_rng",
    "build_window",
    "generate_text",
    "multinomial_sample",
    "resolve_config",
    "softmax",
    "stream",
    "validate_overrides",
]
