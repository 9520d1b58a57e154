"""Tests for the StrategyRegistry."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from lm_decoder.config import DecoderConfig
from lm_decoder.exceptions import ConfigurationError
from lm_decoder.strategies import (
    GreedyStrategy,
    StrategyRegistry,
    TopKStrategy,
    TopPRandomStrategy,
    TopPStrategy,
)
from lm_decoder.strategies.greedy import GreedyStrategy as _Greedy


def _config(**overrides: object) -> DecoderConfig:
    return DecoderConfig(_env_file=None, **overrides)  # type: ignore[call-arg]


class TestStrategyRegistry:
    """Tests for lookup and construction."""

    def test_builtins_registered(self) -> None:
        assert {"greedy", "top_k", "top_p", "top_p_random"} <= set(
            StrategyRegistry.list_registered()
        )

    def test_get_returns_class(self) -> None:
        assert StrategyRegistry.get("greedy") is GreedyStrategy
        assert StrategyRegistry.get("top_p_random") is TopPRandomStrategy

    def test_build_reads_parameters_from_config(self) -> None:
        assert StrategyRegistry.build(_config(strategy="top_k", top_k=7)) == TopKStrategy(k=7)
        assert StrategyRegistry.build(_config(strategy="top_p", top_p=0.3)) == TopPStrategy(p=0.3)
        assert isinstance(StrategyRegistry.build(_config()), GreedyStrategy)

    def test_build_validates_eagerly(self) -> None:
        with pytest.raises(ConfigurationError):
            StrategyRegistry.build(_config(strategy="top_k", top_k=0))
        with pytest.raises(ConfigurationError):
            StrategyRegistry.build(_config(strategy="top_p_random", top_p=1.5))

    def test_unknown_name(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown decoding strategy"):
            StrategyRegistry.get("beam_search_that_does_not_exist")

    def test_duplicate_registration_rejected(self) -> None:
        with pytest.raises(ValueError, match="already registered"):
            StrategyRegistry.register("greedy")(_Greedy)

    def test_entry_point_strategy_loaded(self) -> None:
        """Strategies from the entry-point group are loaded on a lookup miss."""
        plugin_cls = MagicMock(name="PluginStrategy")
        ep = MagicMock()
        ep.name = "plugin_strategy"
        ep.load.return_value = plugin_cls

        with (
            patch.object(StrategyRegistry, "_entry_points_loaded", False),
            patch.dict(StrategyRegistry._registry),
            patch("importlib.metadata.entry_points", return_value=[ep]),
        ):
            assert StrategyRegistry.get("plugin_strategy") is plugin_cls

    def test_broken_entry_point_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        ep = MagicMock()
        ep.name = "broken_strategy"
        ep.load.side_effect = ImportError("missing dependency")

        with (
            patch.object(StrategyRegistry, "_entry_points_loaded", False),
            patch.dict(StrategyRegistry._registry),
            patch("importlib.metadata.entry_points", return_value=[ep]),
            pytest.raises(ConfigurationError),
        ):
            StrategyRegistry.get("broken_strategy")
        assert any("broken_strategy" in r.getMessage() for r in caplog.records)
