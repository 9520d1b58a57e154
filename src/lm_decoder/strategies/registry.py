"""Registry for decoding strategy implementations.

Built-in strategies register at import time via the
``@StrategyRegistry.register()`` decorator. Strategies shipped by other
packages are discovered lazily on the first :meth:`StrategyRegistry.get`
miss via the ``lm_decoder.strategies`` entry-point group.
"""

from __future__ import annotations

import importlib.metadata
import logging
from typing import TYPE_CHECKING, ClassVar

from lm_decoder.exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable

    from lm_decoder.config import DecoderConfig
    from lm_decoder.strategies.base import DecodingStrategy

logger = logging.getLogger("lm_decoder")

_ENTRY_POINT_GROUP = "lm_decoder.strategies"


class StrategyRegistry:
    """Registry mapping string names to DecodingStrategy classes.

    The ``build()`` class method looks up ``config.strategy`` and lets the
    strategy class read its own parameters from the config.
    """

    _registry: ClassVar[dict[str, type[DecodingStrategy]]] = {}
    _entry_points_loaded: ClassVar[bool] = False

    @classmethod
    def register(cls, name: str) -> Callable[[type[DecodingStrategy]], type[DecodingStrategy]]:
        """Decorator that registers a DecodingStrategy class under *name*.

        Args:
            name: Identifier used in config ``strategy``.

        Returns:
            Decorator that registers the class and returns it unchanged.

        Raises:
            ValueError: If *name* is already registered.
        """

        def decorator(klass: type[DecodingStrategy]) -> type[DecodingStrategy]:
            if name in cls._registry:
                raise ValueError(f"Decoding strategy '{name}' is already registered")
            cls._registry[name] = klass
            return klass

        return decorator

    @classmethod
    def get(cls, name: str) -> type[DecodingStrategy]:
        """Return the strategy class registered under *name*.

        Loads entry points on the first miss.

        Raises:
            ConfigurationError: If *name* is not registered.
        """
        if name in cls._registry:
            return cls._registry[name]

        if not cls._entry_points_loaded:
            cls._load_entry_points()
            if name in cls._registry:
                return cls._registry[name]

        available = ", ".join(sorted(cls._registry)) or "(none)"
        raise ConfigurationError(f"Unknown decoding strategy '{name}'. Available: {available}")

    @classmethod
    def build(cls, config: DecoderConfig) -> DecodingStrategy:
        """Instantiate the strategy named by *config.strategy*.

        Args:
            config: Active configuration.

        Returns:
            A validated DecodingStrategy instance.

        Raises:
            ConfigurationError: On an unknown name or invalid parameters.
        """
        return cls.get(config.strategy).from_config(config)

    @classmethod
    def list_registered(cls) -> list[str]:
        """Return sorted list of registered strategy names."""
        return sorted(cls._registry)

    @classmethod
    def _load_entry_points(cls) -> None:
        """Discover and register strategies from the entry-point group.

        Errors while loading an individual entry point are logged as
        warnings and do not prevent other strategies from loading.
        """
        cls._entry_points_loaded = True
        try:
            eps = importlib.metadata.entry_points(group=_ENTRY_POINT_GROUP)
        except Exception:  # Intentional: must not crash on broken metadata
            logger.warning("Failed to load entry points for %s", _ENTRY_POINT_GROUP, exc_info=True)
            return

        for ep in eps:
            if ep.name in cls._registry:
                # Built-in registration takes precedence.
                continue
            try:
                cls._registry[ep.name] = ep.load()
                logger.debug("Loaded decoding strategy %r from entry point", ep.name)
            except Exception:  # Intentional: one bad plugin must not block others
                logger.warning(
                    "Failed to load decoding strategy entry point %r: %s",
                    ep.name,
                    ep.value,
                    exc_info=True,
                )
