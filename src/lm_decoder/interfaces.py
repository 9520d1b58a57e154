"""Contracts for the external collaborators of the decoding loop.

The scorer (a neural network) and the tokenizer are not part of this
package. Anything that structurally matches these protocols can be used.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

import numpy as np

from lm_decoder.exceptions import ScorerError, ShapeError


@runtime_checkable
class Scorer(Protocol):
    """Next-token scorer with a fixed input window.

    ``score()`` returns scores for every window position, shaped
    ``(W, V)`` or ``(1, W, V)``. Numpy arrays, torch tensors and nested
    sequences are accepted. Implementations used from several threads at
    once must document that concurrent read-only calls are safe.
    """

    def score(self, input_ids: np.ndarray, position_ids: np.ndarray) -> Any: ...


@runtime_checkable
class Tokenizer(Protocol):
    """Text <-> token id conversion."""

    def encode(self, text: str) -> list[int]: ...

    def decode(self, ids: Sequence[int]) -> str: ...


def to_numpy(tensor: Any) -> np.ndarray:
    """Convert a tensor to a float64 numpy array.

    Args:
        tensor: A torch.Tensor, numpy array, or nested sequence.

    Returns:
        Numpy array (copied to host memory for device tensors).
    """
    if isinstance(tensor, np.ndarray):
        return tensor.astype(np.float64, copy=False)
    # .cpu() moves GPU tensors (CUDA/MPS) to host memory; no-op on CPU.
    try:
        return tensor.detach().cpu().numpy().astype(np.float64, copy=False)
    except AttributeError:
        return np.asarray(tensor, dtype=np.float64)


def extract_scores(
    output: Any,
    last_real_index: int,
    context_length: int,
    vocab_size: int | None = None,
) -> np.ndarray:
    """Pull the score vector at *last_real_index* out of a scorer output.

    Args:
        output: Raw scorer output, shaped ``(W, V)`` or ``(1, W, V)``.
        last_real_index: Window position of the last real token.
        context_length: Expected window length W.
        vocab_size: Expected vocabulary size V, or None to accept any.

    Returns:
        1-D float64 score vector (vocab_size,).

    Raises:
        ShapeError: If the position axis is not W long.
        ScorerError: If the output has the wrong rank or vocabulary size,
            or the extracted row contains NaN or Inf.
    """
    try:
        array = to_numpy(output)
    except (TypeError, ValueError) as exc:
        raise ScorerError(f"Scorer output is not numeric: {exc}") from exc

    if array.ndim == 3 and array.shape[0] == 1:
        array = array[0]
    if array.ndim != 2:
        raise ScorerError(
            f"Scorer output must have shape (W, V) or (1, W, V), got {array.shape}"
        )
    if array.shape[0] != context_length:
        raise ShapeError(
            f"Scorer returned {array.shape[0]} positions, expected {context_length}"
        )
    if array.shape[1] == 0:
        raise ScorerError("Scorer returned an empty vocabulary axis")
    if vocab_size is not None and array.shape[1] != vocab_size:
        raise ScorerError(
            f"Scorer returned {array.shape[1]} scores per position, expected {vocab_size}"
        )

    row = array[last_real_index]
    if not np.all(np.isfinite(row)):
        raise ScorerError(f"Scorer returned non-finite scores at position {last_real_index}")
    return row
