"""Sampling primitives for lm-decoder.

Numerically stable softmax, argmax and multinomial draws over an
explicitly injected random generator.
"""

from lm_decoder.sampling.primitives import (
    argmax,
    build_rng,
    multinomial_sample,
    softmax,
    sort_descending,
)

__all__ = [
    "argmax",
    "build_rng",
    "multinomial_sample",
    "softmax",
    "sort_descending",
]
