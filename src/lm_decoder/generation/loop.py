"""The autoregressive generation loop.

Orchestrates one decoding step at a time:
    window -> scorer -> score row -> strategy -> append -> decode -> stop check.

Two stopping policies are offered as separate operations:

- ``generate()`` stops when the per-token callback returns a falsy value.
- ``generate_until()`` stops when the chosen token is the stop token.

Both also stop after ``max_tokens`` steps. Steps are strictly sequential;
the loop holds no state shared between runs.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from lm_decoder.config import DecoderConfig, resolve_config
from lm_decoder.exceptions import ConfigurationError, DecoderError, ScorerError, ShapeError
from lm_decoder.generation.types import (
    GeneratedToken,
    GenerationResult,
    GenerationRun,
    GenerationState,
)
from lm_decoder.interfaces import extract_scores
from lm_decoder.logging.logger import GenerationLogger
from lm_decoder.logging.types import TokenRecord
from lm_decoder.sampling.primitives import build_rng
from lm_decoder.strategies.registry import StrategyRegistry
from lm_decoder.window import WINDOW_POLICIES, build_window, check_window_shape

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    import numpy as np

    from lm_decoder.interfaces import Scorer, Tokenizer
    from lm_decoder.strategies.base import DecodingStrategy

logger = logging.getLogger("lm_decoder")

# Overrides that require a fresh strategy instance.
_STRATEGY_FIELDS = frozenset({"strategy", "top_k", "top_p"})


class TextGenerator:
    """Drives a scorer and tokenizer through autoregressive decoding.

    Args:
        scorer: Fixed-window next-token scorer.
        tokenizer: Text <-> id conversion.
        strategy: Decoding strategy. Built from ``config.strategy`` when
            omitted.
        config: Active configuration. Loaded from the environment when
            omitted.
        rng: Random generator for sampling strategies. Built from
            ``config.seed`` when omitted. Not thread-safe: do not run two
            generations of the same instance concurrently.

    Raises:
        ConfigurationError: If the config or strategy is invalid. Raised
            here, before any scorer call.
    """

    def __init__(
        self,
        scorer: Scorer,
        tokenizer: Tokenizer,
        strategy: DecodingStrategy | None = None,
        config: DecoderConfig | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        self._config = config if config is not None else DecoderConfig()
        self._validate_config(self._config)

        self._scorer = scorer
        self._tokenizer = tokenizer
        self._strategy = strategy if strategy is not None else StrategyRegistry.build(self._config)
        self._rng = rng if rng is not None else build_rng(self._config.seed)
        self._logger = GenerationLogger(self._config)

    @staticmethod
    def _validate_config(config: DecoderConfig) -> None:
        if config.context_length <= 0:
            raise ConfigurationError(
                f"context_length must be positive, got {config.context_length}"
            )
        if config.window_policy not in WINDOW_POLICIES:
            raise ConfigurationError(f"Unknown window policy {config.window_policy!r}")

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    def generate(
        self,
        prompt: str,
        max_tokens: int | None = None,
        on_token: Callable[[str], Any] | None = None,
    ) -> GenerationResult:
        """Generate with the callback stopping policy.

        Args:
            prompt: Text to continue.
            max_tokens: Step budget (defaults to ``config.max_tokens``).
            on_token: Called with each new fragment; a falsy return stops
                the loop after the current token has been appended.

        Returns:
            GenerationResult in ``STOPPED_BY_CALLBACK`` or
            ``STOPPED_BY_MAX_TOKENS``.

        Raises:
            ConfigurationError: Before any scorer call, on invalid input.
            ScorerError: If the scorer fails; carries the partial output.
            ShapeError: On a window/scorer shape mismatch.
        """
        run = self.prepare(prompt, max_tokens=max_tokens)
        return self.run(run, on_token=on_token)

    def generate_until(
        self,
        prompt: str,
        stop_token: str | int | None = None,
        max_tokens: int | None = None,
        on_token: Callable[[str], Any] | None = None,
    ) -> GenerationResult:
        """Generate with the stop-token policy.

        The loop ends as soon as the chosen token equals the stop token
        (which is still appended). An optional callback may also stop the
        loop; it is consulted before the stop-token check.

        Args:
            prompt: Text to continue.
            stop_token: Stop token as a string or id (defaults to
                ``config.stop_token``).
            max_tokens: Step budget (defaults to ``config.max_tokens``).
            on_token: Optional per-fragment callback.

        Returns:
            GenerationResult in any non-failed terminal state.
        """
        if stop_token is None:
            stop_token = self._config.stop_token
        run = self.prepare(prompt, max_tokens=max_tokens, stop_token=stop_token)
        return self.run(run, on_token=on_token)

    def stream(
        self,
        prompt: str,
        max_tokens: int | None = None,
        stop_token: str | int | None = None,
    ) -> Iterator[str]:
        """Lazily generate fragments.

        Validation happens here, before the iterator is returned; scorer
        calls happen only as the iterator is consumed. The stream is finite
        and not restartable: the stop fragment is yielded last when the stop
        token is produced.

        Args:
            prompt: Text to continue.
            max_tokens: Step budget (defaults to ``config.stream_max_tokens``).
            stop_token: Stop token as string or id (defaults to
                ``config.stop_token``).

        Returns:
            Iterator over decoded fragments.
        """
        if max_tokens is None:
            max_tokens = self._config.stream_max_tokens
        if stop_token is None:
            stop_token = self._config.stop_token
        run = self.prepare(prompt, max_tokens=max_tokens, stop_token=stop_token)
        run.started = True
        return (token.fragment for token in self._iter_steps(run))

    def with_overrides(self, **overrides: Any) -> TextGenerator:
        """Return a generator sharing this one's collaborators with a resolved config.

        The strategy is rebuilt when a strategy field is overridden and a
        fresh RNG is created when ``seed`` is overridden; otherwise both are
        shared.

        Raises:
            ConfigurationError: On unknown, scorer-bound, or invalid overrides.
        """
        config = resolve_config(self._config, overrides)
        strategy = (
            StrategyRegistry.build(config)
            if _STRATEGY_FIELDS.intersection(overrides)
            else self._strategy
        )
        rng = build_rng(config.seed) if "seed" in overrides else self._rng
        return TextGenerator(self._scorer, self._tokenizer, strategy, config, rng)

    # ------------------------------------------------------------------
    # Lower-level API
    # ------------------------------------------------------------------

    def prepare(
        self,
        prompt: str,
        max_tokens: int | None = None,
        stop_token: str | int | None = None,
    ) -> GenerationRun:
        """Validate inputs and encode the prompt without calling the scorer.

        Args:
            prompt: Text to continue.
            max_tokens: Step budget (defaults to ``config.max_tokens``).
            stop_token: Stop token as string or id, or None to disable the
                stop-token policy.

        Returns:
            A fresh GenerationRun in state ``RUNNING``.

        Raises:
            ConfigurationError: If the budget is negative, the prompt encodes
                to no tokens, or the stop token cannot be resolved.
        """
        if max_tokens is None:
            max_tokens = self._config.max_tokens
        if max_tokens < 0:
            raise ConfigurationError(f"max_tokens must be >= 0, got {max_tokens}")

        tokens = list(self._tokenizer.encode(prompt))
        if not tokens:
            raise ConfigurationError(f"Prompt {prompt!r} encodes to an empty token sequence")

        stop_token_id = self.resolve_stop_token(stop_token) if stop_token is not None else None

        return GenerationRun(
            prompt=prompt,
            tokens=tokens,
            prompt_length=len(tokens),
            max_tokens=max_tokens,
            stop_token_id=stop_token_id,
        )

    def run(
        self,
        run: GenerationRun,
        on_token: Callable[[str], Any] | None = None,
    ) -> GenerationResult:
        """Execute a prepared run to a terminal state.

        Raises:
            DecoderError: If *run* has already been executed.
            ScorerError: If the scorer fails.
            ShapeError: On a window/scorer shape mismatch.
        """
        if run.started:
            raise DecoderError("GenerationRun has already been executed")
        run.started = True

        steps = self._iter_steps(run)
        try:
            for token in steps:
                if on_token is not None and not on_token(token.fragment):
                    run.state = GenerationState.STOPPED_BY_CALLBACK
                    logger.info("Generation stopped by callback after %d tokens", token.step + 1)
                    break
        except Exception:
            run.state = GenerationState.FAILED
            raise
        finally:
            steps.close()

        return self._result(run)

    def resolve_stop_token(self, stop_token: str | int) -> int:
        """Map a stop token given as string or id to a single token id.

        Raises:
            ConfigurationError: If the id is negative or the string does not
                encode to exactly one token.
        """
        if isinstance(stop_token, int) and not isinstance(stop_token, bool):
            if stop_token < 0:
                raise ConfigurationError(f"Stop token id must be >= 0, got {stop_token}")
            return stop_token

        ids = list(self._tokenizer.encode(stop_token))
        if len(ids) != 1:
            raise ConfigurationError(
                f"Stop token {stop_token!r} must encode to exactly one token, got {ids}"
            )
        return ids[0]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _iter_steps(self, run: GenerationRun) -> Iterator[GeneratedToken]:
        """Yield one GeneratedToken per step until a terminal state.

        Scorer calls happen only when the consumer asks for the next token,
        so abandoning the iterator stops the loop immediately.
        """
        logger.info(
            "Generation started: prompt_tokens=%d max_tokens=%d strategy=%s stop_token_id=%s",
            run.prompt_length,
            run.max_tokens,
            self._strategy.name,
            run.stop_token_id,
        )

        for step in range(run.max_tokens):
            try:
                token = self._step(run, step)
            except (ScorerError, ShapeError) as exc:
                self._abort(run, exc)
                raise

            yield token

            if run.stop_token_id is not None and token.token_id == run.stop_token_id:
                run.state = GenerationState.STOPPED_BY_STOP_TOKEN
                logger.info("Generation reached stop token after %d tokens", step + 1)
                return

        run.state = GenerationState.STOPPED_BY_MAX_TOKENS
        logger.info("Generation reached max_tokens=%d", run.max_tokens)

    def _step(self, run: GenerationRun, step: int) -> GeneratedToken:
        t_start_ns = time.perf_counter_ns()
        config = self._config

        window = build_window(
            run.tokens,
            config.context_length,
            pad_token_id=config.pad_token_id,
            policy=config.window_policy,
        )
        check_window_shape(window, config.context_length)

        t_score_ns = time.perf_counter_ns()
        try:
            output = self._scorer.score(window.input_ids, window.position_ids)
        except Exception as exc:  # Intentional: any scorer failure aborts this run only
            raise ScorerError(f"Scorer failed at step {step}: {exc}") from exc
        score_ms = (time.perf_counter_ns() - t_score_ns) / 1_000_000.0

        scores = extract_scores(
            output,
            window.last_real_index,
            config.context_length,
            vocab_size=run.vocab_size,
        )
        run.vocab_size = int(scores.shape[0])

        selection = self._strategy.select(scores, self._rng)
        run.tokens.append(selection.token_id)
        fragment = self._tokenizer.decode([selection.token_id])

        token = GeneratedToken(
            step=step,
            token_id=selection.token_id,
            fragment=fragment,
            selection=selection,
        )
        run.steps.append(token)

        self._logger.log_token(
            TokenRecord(
                timestamp_ns=t_start_ns,
                score_ms=score_ms,
                total_step_ms=(time.perf_counter_ns() - t_start_ns) / 1_000_000.0,
                step=step,
                strategy=self._strategy.name,
                window_length=window.length,
                last_real_index=window.last_real_index,
                token_id=selection.token_id,
                token_rank=selection.token_rank,
                token_prob=selection.token_prob,
                num_candidates=selection.num_candidates,
                fragment=fragment,
            )
        )
        return token

    def _abort(self, run: GenerationRun, exc: ScorerError | ShapeError) -> None:
        """Move *run* to FAILED and attach its partial output to *exc*."""
        run.state = GenerationState.FAILED
        exc.token_ids = list(run.tokens)
        exc.partial_text = self._tokenizer.decode(run.tokens)
        logger.error(
            "Generation aborted after %d tokens: %s",
            len(run.new_token_ids),
            exc,
        )

    def _result(self, run: GenerationRun) -> GenerationResult:
        return GenerationResult(
            text=self._tokenizer.decode(run.tokens),
            generated_text=self._tokenizer.decode(run.new_token_ids),
            token_ids=list(run.tokens),
            prompt_length=run.prompt_length,
            state=run.state,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> DecoderConfig:
        """The active configuration."""
        return self._config

    @property
    def strategy(self) -> DecodingStrategy:
        """The active decoding strategy."""
        return self._strategy

    @property
    def generation_logger(self) -> GenerationLogger:
        """The diagnostic logger for this generator."""
        return self._logger
