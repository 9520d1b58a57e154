"""Diagnostic logging subsystem for lm-decoder.

Provides immutable per-token decoding records and a configurable logger
that supports none/summary/full verbosity and in-memory diagnostic mode.
"""

from lm_decoder.logging.logger import GenerationLogger
from lm_decoder.logging.types import TokenRecord

__all__ = [
    "GenerationLogger",
    "TokenRecord",
]
