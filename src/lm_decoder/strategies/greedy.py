"""Greedy decoding: always pick the highest-scoring token."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from lm_decoder.sampling.primitives import argmax
from lm_decoder.strategies.base import DecodingStrategy, as_scores
from lm_decoder.strategies.registry import StrategyRegistry
from lm_decoder.strategies.types import SelectionResult

if TYPE_CHECKING:
    import numpy as np

    from lm_decoder.config import DecoderConfig


@StrategyRegistry.register("greedy")
@dataclass(frozen=True, slots=True)
class GreedyStrategy(DecodingStrategy):
    """Deterministic argmax. Ties resolve to the lowest index; ``rng`` is unused."""

    name: ClassVar[str] = "greedy"

    def select(self, scores: np.ndarray, rng: np.random.Generator) -> SelectionResult:
        token_id = argmax(as_scores(scores))
        return SelectionResult(
            token_id=token_id,
            token_rank=0,
            token_prob=1.0,
            num_candidates=1,
            diagnostics={"strategy": self.name},
        )

    @classmethod
    def from_config(cls, config: DecoderConfig) -> GreedyStrategy:
        return cls()
