"""Top-k sampling.

Only the k highest-scoring tokens are considered. Softmax is applied to
those k scores alone, then one of them is drawn in proportion to its
probability.
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from lm_decoder.exceptions import ConfigurationError
from lm_decoder.sampling.primitives import multinomial_sample, softmax, sort_descending
from lm_decoder.strategies.base import DecodingStrategy, as_scores
from lm_decoder.strategies.registry import StrategyRegistry
from lm_decoder.strategies.types import SelectionResult

if TYPE_CHECKING:
    import numpy as np

    from lm_decoder.config import DecoderConfig


@StrategyRegistry.register("top_k")
@dataclass(frozen=True, slots=True)
class TopKStrategy(DecodingStrategy):
    """Sample among the ``k`` best-scoring tokens.

    Args:
        k: Number of candidates; must be a positive integer (numpy
            integer types are accepted). Values above the vocabulary size
            keep the whole vocabulary.

    Raises:
        ConfigurationError: If ``k`` is not a positive integer.
    """

    k: int
    name: ClassVar[str] = "top_k"

    def __post_init__(self) -> None:
        if isinstance(self.k, bool) or not isinstance(self.k, numbers.Integral) or self.k <= 0:
            raise ConfigurationError(f"top_k must be a positive integer, got {self.k!r}")
        # numpy integers are stored as plain int.
        object.__setattr__(self, "k", int(self.k))

    def select(self, scores: np.ndarray, rng: np.random.Generator) -> SelectionResult:
        values = as_scores(scores)
        effective_k = min(self.k, values.size)

        order = sort_descending(values)[:effective_k]
        probs = softmax(values[order])
        rank = multinomial_sample(probs, rng)

        return SelectionResult(
            token_id=int(order[rank]),
            token_rank=rank,
            token_prob=float(probs[rank]),
            num_candidates=effective_k,
            diagnostics={"strategy": self.name, "effective_top_k": effective_k},
        )

    @classmethod
    def from_config(cls, config: DecoderConfig) -> TopKStrategy:
        return cls(k=config.top_k)
