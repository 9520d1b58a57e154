"""Data types for the decoding strategy subsystem."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class SelectionResult:
    """Result of applying a decoding strategy to one score vector.

    Attributes:
        token_id: Vocabulary index of the selected token.
        token_rank: Rank among probability-sorted candidates (0 = most probable).
        token_prob: Probability of the selected token within its candidate set.
        num_candidates: Number of tokens the strategy sampled from.
        diagnostics: Additional info (strategy name, draw details).
    """

    token_id: int
    token_rank: int
    token_prob: float
    num_candidates: int
    diagnostics: dict[str, Any]
