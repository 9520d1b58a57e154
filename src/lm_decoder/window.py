"""Fixed-length context window construction.

The scorer always receives exactly ``context_length`` token ids plus the
matching position ids ``0..W-1``. Short sequences are right-padded with the
pad id; long sequences are cut to W tokens according to the window policy.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from lm_decoder.exceptions import ConfigurationError, ShapeError

WINDOW_POLICIES: frozenset[str] = frozenset({"prefix", "sliding"})


@dataclass(frozen=True, slots=True)
class ContextWindow:
    """Scorer input for a single decoding step.

    Attributes:
        input_ids: int64 array of length W.
        position_ids: int64 array ``0..W-1``.
        last_real_index: Position whose scores predict the next token.
            Scores at pad positions carry no meaning.
    """

    input_ids: np.ndarray
    position_ids: np.ndarray
    last_real_index: int

    @property
    def length(self) -> int:
        return int(self.input_ids.shape[0])


def build_window(
    tokens: Sequence[int],
    context_length: int,
    pad_token_id: int = 0,
    policy: str = "prefix",
) -> ContextWindow:
    """Map a growing token sequence onto the scorer's fixed window.

    Args:
        tokens: The full token sequence (prompt plus generated tokens).
        context_length: Window length W; must be positive.
        pad_token_id: Id used for right padding.
        policy: ``"prefix"`` keeps the first W tokens of a long sequence,
            so the window stops changing once the sequence outgrows it.
            ``"sliding"`` keeps the last W tokens instead.

    Returns:
        ContextWindow of length exactly W.

    Raises:
        ConfigurationError: If W <= 0, *tokens* is empty, or *policy* is unknown.
    """
    if context_length <= 0:
        raise ConfigurationError(f"context_length must be positive, got {context_length}")
    if len(tokens) == 0:
        raise ConfigurationError("Cannot build a context window from an empty token sequence")
    if policy not in WINDOW_POLICIES:
        raise ConfigurationError(
            f"Unknown window policy {policy!r}. Available: {', '.join(sorted(WINDOW_POLICIES))}"
        )

    if len(tokens) > context_length:
        kept = tokens[:context_length] if policy == "prefix" else tokens[-context_length:]
    else:
        kept = tokens

    input_ids = np.full(context_length, pad_token_id, dtype=np.int64)
    input_ids[: len(kept)] = np.asarray(kept, dtype=np.int64)

    return ContextWindow(
        input_ids=input_ids,
        position_ids=np.arange(context_length, dtype=np.int64),
        last_real_index=len(kept) - 1,
    )


def check_window_shape(window: ContextWindow, context_length: int) -> None:
    """Raise ShapeError if the window or its positions are not length W."""
    ids_len = int(np.asarray(window.input_ids).shape[0])
    pos_len = int(np.asarray(window.position_ids).shape[0])
    if ids_len != context_length or pos_len != context_length:
        raise ShapeError(
            f"Context window shape mismatch: input_ids={ids_len}, "
            f"position_ids={pos_len}, expected {context_length}"
        )
