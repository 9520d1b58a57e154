"""Data types for the generation loop."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from lm_decoder.strategies.types import SelectionResult


class GenerationState(enum.Enum):
    """Lifecycle of one generation run.

    ``RUNNING`` is the initial state; every other state is terminal.
    """

    RUNNING = "running"
    STOPPED_BY_CALLBACK = "stopped_by_callback"
    STOPPED_BY_STOP_TOKEN = "stopped_by_stop_token"
    STOPPED_BY_MAX_TOKENS = "stopped_by_max_tokens"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not GenerationState.RUNNING


@dataclass(frozen=True, slots=True)
class GeneratedToken:
    """One accepted decoding step.

    Attributes:
        step: Zero-based step index within the run.
        token_id: Chosen vocabulary index.
        fragment: Text of the chosen token alone.
        selection: Full strategy output for the step.
    """

    step: int
    token_id: int
    fragment: str
    selection: SelectionResult


@dataclass(slots=True)
class GenerationRun:
    """Mutable state owned by exactly one generation.

    Created by :meth:`TextGenerator.prepare`, consumed once by
    :meth:`TextGenerator.run` (or a stream). ``tokens`` starts as the
    encoded prompt and grows by one id per accepted step.
    """

    prompt: str
    tokens: list[int]
    prompt_length: int
    max_tokens: int
    stop_token_id: int | None = None
    state: GenerationState = GenerationState.RUNNING
    vocab_size: int | None = None
    started: bool = False
    steps: list[GeneratedToken] = field(default_factory=list)

    @property
    def new_token_ids(self) -> list[int]:
        return self.tokens[self.prompt_length :]


@dataclass(frozen=True, slots=True)
class GenerationResult:
    """Outcome of a completed generation.

    Attributes:
        text: The full sequence decoded back to text (prompt included).
        generated_text: Only the newly generated tokens, decoded together.
        token_ids: The full token sequence.
        prompt_length: Number of leading ids that came from the prompt.
        state: Terminal state the loop ended in.
    """

    text: str
    generated_text: str
    token_ids: list[int]
    prompt_length: int
    state: GenerationState

    @property
    def new_token_ids(self) -> list[int]:
        return self.token_ids[self.prompt_length :]
