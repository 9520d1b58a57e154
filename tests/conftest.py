"""Shared pytest fixtures for lm-decoder tests.

Provides a word-level fake tokenizer, scripted fake scorers, fixed-draw
random sources and ready-made configurations, so no real model is needed.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

import numpy as np
import pytest

from lm_decoder.config import DecoderConfig

# Vocabulary of the fake tokenizer. Index 0 doubles as the pad id.
VOCAB: list[str] = ["<pad>", "<|endoftext|>", "the", "cat", "sat", "on", "mat", "a"]


class WordTokenizer:
    """Whitespace tokenizer over a fixed vocabulary."""

    def __init__(self, vocab: Sequence[str] = VOCAB) -> None:
        self.vocab = list(vocab)
        self._ids = {word: i for i, word in enumerate(self.vocab)}

    def encode(self, text: str) -> list[int]:
        return [self._ids[word] for word in text.split()]

    def decode(self, ids: Sequence[int]) -> str:
        return " ".join(self.vocab[i] for i in ids)


class ScriptedScorer:
    """Returns a pre-scripted score row per call, repeated at every position.

    The last row is reused once the script runs out. Every call is recorded
    so tests can inspect the windows the loop produced.
    """

    def __init__(self, rows: Sequence[Sequence[float]], context_length: int) -> None:
        self.rows = [np.asarray(row, dtype=np.float64) for row in rows]
        self.context_length = context_length
        self.calls: list[tuple[np.ndarray, np.ndarray]] = []

    def score(self, input_ids: np.ndarray, position_ids: np.ndarray) -> np.ndarray:
        self.calls.append((input_ids.copy(), position_ids.copy()))
        row = self.rows[min(len(self.calls), len(self.rows)) - 1]
        return np.tile(row, (self.context_length, 1))


class FailingScorer(ScriptedScorer):
    """Scripted scorer that raises on call number *fail_on* (1-based)."""

    def __init__(
        self,
        rows: Sequence[Sequence[float]],
        context_length: int,
        fail_on: int,
    ) -> None:
        super().__init__(rows, context_length)
        self.fail_on = fail_on

    def score(self, input_ids: np.ndarray, position_ids: np.ndarray) -> np.ndarray:
        if len(self.calls) + 1 == self.fail_on:
            self.calls.append((input_ids.copy(), position_ids.copy()))
            raise RuntimeError("model exploded")
        return super().score(input_ids, position_ids)


class FixedDraw:
    """Stand-in for ``numpy.random.Generator`` whose ``random()`` is fixed."""

    def __init__(self, value: float) -> None:
        self.value = value

    def random(self) -> float:
        return self.value


def one_hot(index: int, size: int = len(VOCAB), high: float = 10.0) -> list[float]:
    """Score row strongly favouring *index*."""
    row = [0.0] * size
    row[index] = high
    return row


@pytest.fixture
def tokenizer() -> WordTokenizer:
    """Word-level tokenizer over the shared test vocabulary."""
    return WordTokenizer()


@pytest.fixture
def config() -> DecoderConfig:
    """Small-window config with no log output and no .env influence."""
    return DecoderConfig(
        _env_file=None,
        context_length=4,
        log_level="none",
    )  # type: ignore[call-arg]


@pytest.fixture
def diagnostic_config() -> DecoderConfig:
    """Small-window config that keeps every token record in memory."""
    return DecoderConfig(
        _env_file=None,
        context_length=4,
        log_level="none",
        diagnostic_mode=True,
    )  # type: ignore[call-arg]


@pytest.fixture
def seeded_rng() -> np.random.Generator:
    """Reproducible generator (seed 42)."""
    return np.random.default_rng(42)


@pytest.fixture
def fixed_draw() -> Callable[[float], FixedDraw]:
    """Factory for random sources whose uniform draw is pinned."""
    return FixedDraw


@pytest.fixture
def scenario_scores() -> np.ndarray:
    """Five-token score vector: index 1 best, then 2, 0, 3, 4."""
    return np.array([1.0, 3.0, 2.0, 0.0, -1.0])


@pytest.fixture
def random_scores() -> list[np.ndarray]:
    """A batch of random score vectors with a fixed seed."""
    rng = np.random.default_rng(seed=12345)
    return [rng.standard_normal(50) * scale for scale in (0.1, 1.0, 5.0, 50.0)]


@pytest.fixture
def make_scorer() -> Callable[..., ScriptedScorer]:
    """Factory for scripted scorers (window length 4 unless given)."""

    def _make(rows: Sequence[Sequence[float]], context_length: int = 4) -> ScriptedScorer:
        return ScriptedScorer(rows, context_length)

    return _make


@pytest.fixture
def make_failing_scorer() -> Callable[..., FailingScorer]:
    """Factory for scripted scorers that raise on a given call."""

    def _make(
        rows: Sequence[Sequence[float]],
        fail_on: int,
        context_length: int = 4,
    ) -> FailingScorer:
        return FailingScorer(rows, context_length, fail_on)

    return _make


@pytest.fixture
def favour() -> Callable[..., list[float]]:
    """Factory for score rows that strongly favour one token id."""
    return one_hot
