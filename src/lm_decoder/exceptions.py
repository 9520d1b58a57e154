"""Exception hierarchy for lm-decoder.

All exceptions derive from DecoderError, enabling broad catch patterns
at the application boundary while allowing fine-grained handling internally.
"""

from __future__ import annotations


class DecoderError(Exception):
    """Base exception for all lm-decoder errors."""


class ConfigurationError(DecoderError, ValueError):
    """Invalid decoding configuration.

    Raised for bad strategy parameters (k <= 0, p outside (0, 1]), an
    invalid context length, an empty prompt encoding, unknown strategy
    names or unresolvable stop tokens. Always raised before the first
    scorer call.
    """


class _GenerationAbort(DecoderError):
    """Shared base for errors that abort a running generation.

    Carries the partial output so callers can inspect what was produced
    before the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        partial_text: str = "",
        token_ids: list[int] | None = None,
    ) -> None:
        super().__init__(message)
        self.partial_text = partial_text
        self.token_ids: list[int] = list(token_ids or [])


class ScorerError(_GenerationAbort):
    """The external scorer failed or returned a malformed score vector.

    Fatal for the current generation only. ``partial_text`` and
    ``token_ids`` hold the sequence as it stood when the loop aborted.
    """


class ShapeError(_GenerationAbort):
    """Context window or scorer output does not match the window length.

    Indicates a collaborator contract violation and is always fatal for
    the current generation.
    """
