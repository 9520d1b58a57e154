"""Decoding strategy subsystem for lm-decoder.

Maps a score vector to a single vocabulary index. Built-in strategies:
greedy, top-k, nucleus (top-p) and the threshold-draw top-p variant.
"""

from lm_decoder.strategies.base import DecodingStrategy
from lm_decoder.strategies.greedy import GreedyStrategy
from lm_decoder.strategies.registry import StrategyRegistry
from lm_decoder.strategies.top_k import TopKStrategy
from lm_decoder.strategies.top_p import TopPStrategy
from lm_decoder.strategies.top_p_random import TopPRandomStrategy
from lm_decoder.strategies.types import SelectionResult

__all__ = [
    "DecodingStrategy",
    "GreedyStrategy",
    "SelectionResult",
    "StrategyRegistry",
    "TopKStrategy",
    "TopPRandomStrategy",
    "TopPStrategy",
]
