"""Threshold-draw top-p variant.

Kept alongside :class:`~lm_decoder.strategies.top_p.TopPStrategy` as a
separate strategy because its semantics differ in two ways:

- the uniform draw ``r`` is taken from ``[0, p)`` rather than from the mass
  of a truncated candidate set;
- the candidate list is never truncated; the full probability-sorted
  vocabulary is walked until the running sum exceeds ``r``.

Because ``r < p``, the walk always ends inside the top-p nucleus, but the
relative odds inside it differ from TopP's renormalized draw (the token
that crosses ``p`` is under-weighted).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

import numpy as np

from lm_decoder.sampling.primitives import softmax, sort_descending
from lm_decoder.strategies.base import DecodingStrategy, as_scores
from lm_decoder.strategies.registry import StrategyRegistry
from lm_decoder.strategies.top_p import validate_p
from lm_decoder.strategies.types import SelectionResult

if TYPE_CHECKING:
    from lm_decoder.config import DecoderConfig


@StrategyRegistry.register("top_p_random")
@dataclass(frozen=True, slots=True)
class TopPRandomStrategy(DecodingStrategy):
    """Draw ``r`` in ``[0, p)`` and walk the sorted distribution to it.

    Args:
        p: Upper bound of the draw range, in (0, 1].

    Raises:
        ConfigurationError: If ``p`` is outside (0, 1].
    """

    p: float
    name: ClassVar[str] = "top_p_random"

    def __post_init__(self) -> None:
        validate_p(self.p, "top_p")

    def select(self, scores: np.ndarray, rng: np.random.Generator) -> SelectionResult:
        probs = softmax(as_scores(scores))
        order = sort_descending(probs)
        sorted_probs = probs[order]

        r = rng.random() * self.p
        cumulative = np.cumsum(sorted_probs)
        rank = int(np.searchsorted(cumulative, r, side="right"))
        # Rounding can leave r above the final running sum.
        rank = min(rank, sorted_probs.size - 1)

        return SelectionResult(
            token_id=int(order[rank]),
            token_rank=rank,
            token_prob=float(sorted_probs[rank]),
            num_candidates=int(sorted_probs.size),
            diagnostics={"strategy": self.name, "r": r},
        )

    @classmethod
    def from_config(cls, config: DecoderConfig) -> TopPRandomStrategy:
        return cls(p=config.top_p)
