"""Per-step decoding log.

Every accepted token produces one :class:`TokenRecord`. How much of it is
written to the ``"lm_decoder"`` logger depends on ``config.log_level``;
whether it is also kept for later inspection depends on
``config.diagnostic_mode``.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

import numpy as np

if TYPE_CHECKING:
    from lm_decoder.config import DecoderConfig
    from lm_decoder.logging.types import TokenRecord

logger = logging.getLogger("lm_decoder")

_STEP_LINE = (
    "step=%d token=%d rank=%d prob=%.4f candidates=%d strategy=%s "
    "pos=%d/%d fragment=%r score=%.2fms total=%.2fms"
)


class GenerationLogger:
    """Records the decoding choices of one TextGenerator.

    ``log_level`` controls the text output per decoding step:

    - ``"none"`` writes nothing.
    - ``"summary"`` writes one line: chosen id and fragment, its rank among
      the strategy's candidates, the window position read, and how long the
      scorer call and the whole step took.
    - ``"full"`` writes the record as JSON.

    With ``diagnostic_mode`` every record is retained regardless of
    ``log_level``, which makes :meth:`get_summary_stats` meaningful for
    comparing strategies over a run.
    """

    def __init__(self, config: DecoderConfig) -> None:
        self._log_level = config.log_level
        self._diagnostic_mode = config.diagnostic_mode
        self._records: list[TokenRecord] = []

    def log_token(self, record: TokenRecord) -> None:
        """Emit and optionally retain the record of one decoding step."""
        if self._diagnostic_mode:
            self._records.append(record)

        if self._log_level == "summary":
            logger.info(
                _STEP_LINE,
                record.step,
                record.token_id,
                record.token_rank,
                record.token_prob,
                record.num_candidates,
                record.strategy,
                record.last_real_index,
                record.window_length,
                record.fragment,
                record.score_ms,
                record.total_step_ms,
            )
        elif self._log_level == "full":
            logger.info("token_record: %s", json.dumps(asdict(record), default=str))

    def get_diagnostic_data(self) -> list[TokenRecord]:
        """Return a copy of the retained records (empty unless diagnostic mode is on)."""
        return list(self._records)

    def get_summary_stats(self) -> dict[str, Any]:
        """Aggregate the retained records of the run.

        ``top_choice_rate`` is the share of steps where the strategy picked
        its highest-probability candidate; it is 1.0 for greedy decoding and
        falls as sampling spreads out. ``mean_score_ms`` against
        ``mean_step_ms`` shows how much of each step the scorer accounts for.

        Returns:
            Mapping of statistic name to value, or ``{}`` with no records.
        """
        if not self._records:
            return {}

        ranks = np.array([r.token_rank for r in self._records])
        probs = np.array([r.token_prob for r in self._records])
        candidates = np.array([r.num_candidates for r in self._records])
        score_ms = np.array([r.score_ms for r in self._records])
        step_ms = np.array([r.total_step_ms for r in self._records])

        return {
            "total_tokens": len(self._records),
            "mean_rank": float(ranks.mean()),
            "max_rank": int(ranks.max()),
            "mean_prob": float(probs.mean()),
            "mean_candidates": float(candidates.mean()),
            "mean_score_ms": float(score_ms.mean()),
            "mean_step_ms": float(step_ms.mean()),
            "max_step_ms": float(step_ms.max()),
            "top_choice_rate": float(np.mean(ranks == 0)),
            "strategies": dict(Counter(r.strategy for r in self._records)),
        }

    def clear(self) -> None:
        """Drop all retained records."""
        self._records.clear()
