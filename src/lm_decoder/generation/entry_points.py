"""Convenience entry points around :class:`TextGenerator`.

``stream()`` returns a lazy iterator of fragments that ends on the stop
token or the token budget. ``generate_text()`` blocks until a terminal
state and returns the decoded text.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from lm_decoder.config import DecoderConfig, resolve_config
from lm_decoder.generation.loop import TextGenerator
from lm_decoder.strategies.registry import StrategyRegistry
from lm_decoder.strategies.top_p import TopPStrategy

if TYPE_CHECKING:
    from collections.abc import Iterator

    import numpy as np

    from lm_decoder.interfaces import Scorer, Tokenizer
    from lm_decoder.strategies.base import DecodingStrategy


def _resolve_strategy(
    strategy: DecodingStrategy | str,
    config: DecoderConfig,
) -> DecodingStrategy:
    if isinstance(strategy, str):
        return StrategyRegistry.build(resolve_config(config, {"strategy": strategy}))
    return strategy


def stream(
    scorer: Scorer,
    tokenizer: Tokenizer,
    prompt: str,
    max_tokens: int | None = None,
    strategy: DecodingStrategy | str | None = None,
    config: DecoderConfig | None = None,
    rng: np.random.Generator | None = None,
) -> Iterator[str]:
    """Stream fragments for *prompt* until the stop token or *max_tokens*.

    Nucleus sampling with ``config.top_p`` is used unless a strategy is
    given. Every call starts from a fresh token sequence.

    Raises:
        ConfigurationError: Immediately, before the iterator is returned.
    """
    config = config if config is not None else DecoderConfig()
    if strategy is None:
        resolved: DecodingStrategy = TopPStrategy(p=config.top_p)
    else:
        resolved = _resolve_strategy(strategy, config)
    generator = TextGenerator(scorer, tokenizer, resolved, config, rng)
    return generator.stream(prompt, max_tokens=max_tokens)


def generate_text(
    scorer: Scorer,
    tokenizer: Tokenizer,
    prompt: str,
    until_token: str | int,
    strategy: DecodingStrategy | str,
    max_tokens: int | None = None,
    config: DecoderConfig | None = None,
    rng: np.random.Generator | None = None,
) -> str:
    """Generate until *until_token* or *max_tokens* and return the full text.

    Args:
        scorer: Fixed-window next-token scorer.
        tokenizer: Text <-> id conversion.
        prompt: Text to continue.
        until_token: Stop token as a string or id.
        strategy: A strategy instance or a registered strategy name (whose
            parameters come from *config*).
        max_tokens: Step budget (defaults to ``config.max_tokens``).
        config: Active configuration.
        rng: Random generator for sampling strategies.

    Returns:
        The full decoded sequence, prompt included.
    """
    config = config if config is not None else DecoderConfig()
    generator = TextGenerator(scorer, tokenizer, _resolve_strategy(strategy, config), config, rng)
    return generator.generate_until(prompt, stop_token=until_token, max_tokens=max_tokens).text
