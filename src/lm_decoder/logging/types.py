"""Data types for the diagnostic logging subsystem."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class TokenRecord:
    """Immutable record of a single decoding step.

    Attributes:
        timestamp_ns: Monotonic time at the start of the step (nanoseconds).
        score_ms: Time spent in the scorer call (milliseconds).
        total_step_ms: Total time for the step, decode included (ms).
        step: Zero-based index of the step within its generation.
        strategy: Name of the decoding strategy used.
        window_length: Context window length W.
        last_real_index: Window position the scores were read from.
        token_id: Vocabulary index of the selected token.
        token_rank: Rank of the selected token (0 = most probable).
        token_prob: Probability of the selected token within its candidates.
        num_candidates: Number of tokens the strategy sampled from.
        fragment: Decoded text of the selected token.
    """

    # Timing
    timestamp_ns: int
    score_ms: float
    total_step_ms: float

    # Step
    step: int
    strategy: str

    # Window
    window_length: int
    last_real_index: int

    # Selection
    token_id: int
    token_rank: int
    token_prob: float
    num_candidates: int
    fragment: str
