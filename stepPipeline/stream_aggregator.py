"""
Stream Aggregator
=================

Reduces a fragment sequence (sync or async iterable of text chunks) into one
string, in arrival order.

The aggregator consumes the whole sequence before returning. If the producer
fails after emitting some fragments, the partial text is discarded and
StreamInterrupted is raised: a truncated result is never returned as if it
were complete.
"""

import inspect
import logging
from typing import AsyncIterable, Awaitable, Callable, Iterable, List, Optional, Union

from core.errors import StreamInterrupted

logger = logging.getLogger(__name__)

FragmentSequence = Union[AsyncIterable[str], Iterable[str]]
FragmentObserver = Callable[[str], Union[None, Awaitable[None]]]


def is_fragment_sequence(value) -> bool:
    """True for iterators/generators of fragments, False for plain values."""
    if hasattr(value, "__aiter__"):
        return True
    # dicts, lists and strings are values, not streams
    return inspect.isgenerator(value) or (hasattr(value, "__next__") and hasattr(value, "__iter__"))


class StreamAggregator:
    """
    Single-use reducer for one fragment sequence.

    Example:
        >>> text = await StreamAggregator().aggregate(agent.generate(prompt))

    Args:
        on_fragment: Optional observer called with every fragment as it
            arrives (sync or async). Observer failures abort the stream.
    """

    def __init__(self, on_fragment: Optional[FragmentObserver] = None):
        self.on_fragment = on_fragment
        self._parts: List[str] = []
        self._used = False

    @property
    def fragments_received(self) -> int:
        return len(self._parts)

    async def _accept(self, fragment):
        if not isinstance(fragment, str):
            raise StreamInterrupted(
                f"Received non-text fragment of type {type(fragment).__name__}",
                fragments_received=len(self._parts),
            )
        self._parts.append(fragment)
        if self.on_fragment is not None:
            result = self.on_fragment(fragment)
            if inspect.isawaitable(result):
                await result

    async def _consume(self, fragments: FragmentSequence):
        if hasattr(fragments, "__aiter__"):
            async for fragment in fragments:
                await self._accept(fragment)
        else:
            for fragment in fragments:
                await self._accept(fragment)

    async def aggregate(self, fragments: FragmentSequence) -> str:
        """
        Consume ``fragments`` completely and return their concatenation.

        Raises:
            StreamInterrupted: producer failed mid-stream, emitted a non-text
                fragment, or finished without emitting anything
            RuntimeError: the aggregator was already used
        """
        if self._used:
            raise RuntimeError("StreamAggregator instances are single-use")
        self._used = True

        try:
            await self._consume(fragments)
        except StreamInterrupted:
            self._parts.clear()
            raise
        except Exception as e:
            received = len(self._parts)
            self._parts.clear()
            logger.warning(f"⚠️ [Aggregator] Stream failed after {received} fragments: {e}")
            raise StreamInterrupted(
                f"Stream interrupted after {received} fragments: {e}",
                fragments_received=received,
            ) from e
        finally:
            await _close(fragments)

        if not self._parts:
            raise StreamInterrupted("Stream completed without emitting any fragment")

        text = "".join(self._parts)
        logger.debug(f"[Aggregator] {len(self._parts)} fragments -> {len(text)} chars")
        return text


async def _close(fragments: FragmentSequence):
    # Release the producer (and its HTTP response) if we stopped early.
    aclose = getattr(fragments, "aclose", None)
    if aclose is not None:
        await aclose()
        return
    close = getattr(fragments, "close", None)
    if close is not None and inspect.isgenerator(fragments):
        close()


async def aggregate(fragments: FragmentSequence, on_fragment: Optional[FragmentObserver] = None) -> str:
    """Aggregate with a fresh, single-use aggregator."""
    return await StreamAggregator(on_fragment=on_fragment).aggregate(fragments)
