"""Abstract base class for decoding strategies.

A strategy maps one score vector to one vocabulary index. Strategies are
immutable and validate their parameters at construction time, so an
invalid ``k`` or ``p`` never reaches the generation loop.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

import numpy as np

if TYPE_CHECKING:
    from lm_decoder.config import DecoderConfig
    from lm_decoder.strategies.types import SelectionResult


class DecodingStrategy(ABC):
    """Abstract base for all decoding strategies.

    Implementations hold only their (validated) parameters. The random
    generator is passed to ``select()`` so that a single strategy instance
    can be shared by independent generations.
    """

    name: ClassVar[str]

    @abstractmethod
    def select(self, scores: np.ndarray, rng: np.random.Generator) -> SelectionResult:
        """Choose the next token from a score vector.

        Args:
            scores: 1-D float64 score array (vocab_size,).
            rng: Random source for strategies that sample.

        Returns:
            SelectionResult whose ``token_id`` is the chosen vocabulary index.
        """

    @classmethod
    @abstractmethod
    def from_config(cls, config: DecoderConfig) -> DecodingStrategy:
        """Build the strategy from the matching config fields.

        Raises:
            ConfigurationError: If the configured parameters are invalid.
        """


def as_scores(scores: np.ndarray) -> np.ndarray:
    """Coerce *scores* to a 1-D float64 array."""
    return np.asarray(scores, dtype=np.float64).reshape(-1)
