"""Numerically stable softmax and multinomial sampling.

These are the shared building blocks of every decoding strategy. All
randomness comes from an explicitly injected ``numpy.random.Generator``
so that sampling is reproducible under a fixed seed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from lm_decoder.exceptions import ConfigurationError

if TYPE_CHECKING:
    from numpy.typing import ArrayLike


def build_rng(seed: int | None = None) -> np.random.Generator:
    """Return a new random generator.

    Args:
        seed: Seed for reproducible draws. ``None`` seeds from OS entropy.

    Returns:
        A ``numpy.random.Generator`` (PCG64).
    """
    return np.random.default_rng(seed)


def softmax(scores: ArrayLike) -> np.ndarray:
    """Numerically stable softmax via shift-by-max.

    Subtracting the maximum leaves the result unchanged mathematically but
    keeps ``exp`` from overflowing, so any finite input produces a finite
    distribution (all-equal inputs give a uniform one).

    Args:
        scores: 1-D array of real-valued scores.

    Returns:
        float64 probability array of the same length, summing to 1.0.

    Raises:
        ConfigurationError: If *scores* is empty.
    """
    x = np.asarray(scores, dtype=np.float64)
    if x.size == 0:
        raise ConfigurationError("softmax requires at least one score")

    shifted = x - np.max(x)
    exp_shifted = np.exp(shifted)
    result: np.ndarray = exp_shifted / np.sum(exp_shifted)
    return result


def argmax(scores: ArrayLike) -> int:
    """Index of the largest score; the lowest index wins ties."""
    return int(np.argmax(np.asarray(scores)))


def multinomial_sample(weights: ArrayLike, rng: np.random.Generator) -> int:
    """Draw one index with probability proportional to *weights*.

    A uniform value is drawn in ``[0, sum(weights))`` and the cumulative sum
    is walked to the first entry that exceeds it. Weights need not be
    normalized.

    Args:
        weights: 1-D array of non-negative weights.
        rng: Random source for the uniform draw.

    Returns:
        The selected index. If floating-point rounding leaves the draw at or
        above the final cumulative sum, the last index is returned.

    Raises:
        ConfigurationError: If *weights* is empty.
    """
    w = np.asarray(weights, dtype=np.float64)
    if w.size == 0:
        raise ConfigurationError("multinomial_sample requires at least one weight")

    cumulative = np.cumsum(w)
    draw = rng.random() * cumulative[-1]

    # side="right": first index whose cumulative sum is strictly > draw.
    index = int(np.searchsorted(cumulative, draw, side="right"))
    return min(index, w.size - 1)


def sort_descending(values: np.ndarray) -> np.ndarray:
    """Indices that sort *values* in descending order, ties by lowest index."""
    return np.argsort(-values, kind="stable")
