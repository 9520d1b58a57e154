"""Nucleus (top-p) sampling.

Softmax is applied to the full score vector, tokens are sorted by
descending probability, and the shortest prefix whose cumulative
probability exceeds ``p`` is kept. The token that crosses the threshold
is part of the nucleus, so at least one token always survives.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

import numpy as np

from lm_decoder.exceptions import ConfigurationError
from lm_decoder.sampling.primitives import multinomial_sample, softmax, sort_descending
from lm_decoder.strategies.base import DecodingStrategy, as_scores
from lm_decoder.strategies.registry import StrategyRegistry
from lm_decoder.strategies.types import SelectionResult

if TYPE_CHECKING:
    from lm_decoder.config import DecoderConfig


def validate_p(p: float, label: str) -> None:
    """Raise ConfigurationError unless ``0 < p <= 1``."""
    if isinstance(p, bool) or not isinstance(p, (int, float)) or math.isnan(p):
        raise ConfigurationError(f"{label} must be a number in (0, 1], got {p!r}")
    if not 0.0 < p <= 1.0:
        raise ConfigurationError(f"{label} must be in (0, 1], got {p!r}")


def nucleus_size(sorted_probs: np.ndarray, p: float) -> int:
    """Number of leading entries kept so that their sum first exceeds *p*.

    When the running sum never exceeds *p* (``p == 1`` with rounding),
    every entry is kept.
    """
    cumulative = np.cumsum(sorted_probs)
    crossed = np.flatnonzero(cumulative > p)
    if crossed.size == 0:
        return int(sorted_probs.size)
    return int(crossed[0]) + 1


@StrategyRegistry.register("top_p")
@dataclass(frozen=True, slots=True)
class TopPStrategy(DecodingStrategy):
    """Truncate to the nucleus, then draw within it.

    The draw range is the mass of the retained tokens, so the nucleus is
    implicitly renormalized.

    Args:
        p: Probability mass threshold in (0, 1].

    Raises:
        ConfigurationError: If ``p`` is outside (0, 1].
    """

    p: float
    name: ClassVar[str] = "top_p"

    def __post_init__(self) -> None:
        validate_p(self.p, "top_p")

    def select(self, scores: np.ndarray, rng: np.random.Generator) -> SelectionResult:
        probs = softmax(as_scores(scores))
        order = sort_descending(probs)
        sorted_probs = probs[order]

        n = nucleus_size(sorted_probs, self.p)
        nucleus = sorted_probs[:n]
        rank = multinomial_sample(nucleus, rng)

        return SelectionResult(
            token_id=int(order[rank]),
            token_rank=rank,
            token_prob=float(nucleus[rank]),
            num_candidates=n,
            diagnostics={"strategy": self.name, "nucleus_mass": float(np.sum(nucleus))},
        )

    @classmethod
    def from_config(cls, config: DecoderConfig) -> TopPStrategy:
        return cls(p=config.top_p)
