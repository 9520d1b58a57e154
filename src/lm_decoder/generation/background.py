"""Run a generation on a worker thread and relay fragments over a queue.

The loop itself is synchronous. Callers that must not block run it here:
a dedicated thread produces fragments into a ``queue.Queue`` and the
consuming thread iterates them as they arrive.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import TYPE_CHECKING

from lm_decoder.exceptions import DecoderError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from lm_decoder.generation.loop import TextGenerator
    from lm_decoder.generation.types import GenerationResult

logger = logging.getLogger("lm_decoder")

_DONE = object()


class BackgroundGeneration:
    """A generation running on its own thread.

    Inputs are validated in the calling thread, so configuration errors are
    raised by the constructor before the worker starts. Iterating the
    object yields fragments in order and re-raises the worker's error, if
    any, once the fragments run out. The fragments can be iterated once;
    a second iteration raises DecoderError.

    Cancellation is cooperative: ``cancel()`` takes effect when the next
    token has been produced. An in-flight scorer call is never interrupted.

    Args:
        generator: The generator to run. It must not be used by another
            thread while this generation is in progress.
        prompt: Text to continue.
        max_tokens: Step budget (defaults to ``config.max_tokens``).
        stop_token: Stop token as string or id, or None for no stop token.
    """

    def __init__(
        self,
        generator: TextGenerator,
        prompt: str,
        max_tokens: int | None = None,
        stop_token: str | int | None = None,
    ) -> None:
        self._generator = generator
        self._run = generator.prepare(prompt, max_tokens=max_tokens, stop_token=stop_token)
        self._queue: queue.Queue[object] = queue.Queue()
        self._cancelled = threading.Event()
        self._result: GenerationResult | None = None
        self._error: BaseException | None = None
        self._consumed = False

        self._thread = threading.Thread(
            target=self._work,
            daemon=True,
            name="lm-decoder-generation",
        )
        self._thread.start()

    def _work(self) -> None:
        try:
            self._result = self._generator.run(self._run, on_token=self._relay)
        except Exception as exc:  # Intentional: re-raised in the consuming thread
            self._error = exc
        finally:
            self._queue.put(_DONE)

    def _relay(self, fragment: str) -> bool:
        self._queue.put(fragment)
        return not self._cancelled.is_set()

    def __iter__(self) -> Iterator[str]:
        if self._consumed:
            raise DecoderError("BackgroundGeneration fragments have already been consumed")
        self._consumed = True
        return self._drain()

    def _drain(self) -> Iterator[str]:
        while True:
            item = self._queue.get()
            if item is _DONE:
                break
            yield item  # type: ignore[misc]
        if self._error is not None:
            raise self._error

    def cancel(self) -> None:
        """Ask the worker to stop after the token it is currently producing."""
        logger.debug("Cancellation requested for background generation")
        self._cancelled.set()

    def result(self, timeout: float | None = None) -> GenerationResult:
        """Wait for the worker and return its result.

        Args:
            timeout: Seconds to wait, or None to wait indefinitely.

        Returns:
            The GenerationResult of the finished run.

        Raises:
            TimeoutError: If the worker is still running after *timeout*.
            DecoderError: The worker's ScorerError or ShapeError, re-raised.
        """
        self._thread.join(timeout)
        if self._thread.is_alive():
            raise TimeoutError(f"Generation still running after {timeout}s")
        if self._error is not None:
            raise self._error
        if self._result is None:
            raise DecoderError("Generation worker finished without a result")
        return self._result

    @property
    def done(self) -> bool:
        """Whether the worker has finished."""
        return not self._thread.is_alive()
