"""Progress reporting sinks.

The pipeline reports progress through an injected sink instead of a UI
handle. Sinks never block the pipeline and never raise.
"""

import logging
from typing import Callable, Iterable

__all__ = ['LoggingProgressSink', 'CallbackProgressSink', 'CompositeProgressSink']

logger = logging.getLogger(__name__)


class LoggingProgressSink:
    """Report progress to the ``neuropatt`` log at INFO."""

    def __init__(self, log: logging.Logger = None):
        self.log = log or logger

    def report(self, message: str) -> None:
        self.log.info("%s", message)


class CallbackProgressSink:
    """Forward progress messages to a callable (e.g. a GUI text box).

    Exceptions from the callback are logged and dropped so a broken
    display never stops an analysis.
    """

    def __init__(self, callback: Callable[[str], None]):
        self.callback = callback

    def report(self, message: str) -> None:
        try:
            self.callback(message)
        except Exception:
            logger.exception("Progress callback failed for message: %s", message)


class CompositeProgressSink:
    """Fan out messages to several sinks.

    A sink that raises is logged and skipped; the others still receive
    the message.
    """

    def __init__(self, sinks: Iterable):
        self.sinks = list(sinks)

    def report(self, message: str) -> None:
        for sink in self.sinks:
            try:
                sink.report(message)
            except Exception:
                logger.exception("Progress sink %r failed for message: %s", sink, message)
