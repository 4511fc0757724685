import logging

logger = logging.getLogger(__name__)


class EventSource(object):
    """
    A registry of callbacks that are notified of events.

    Handlers are called synchronously on the thread that fires the event, in the order they were added.
    Events fired from within a handler are delivered before fire() returns, so the delivery order of
    events from one source matches the order they were fired in.

    An exception raised by a handler is logged and does not prevent later handlers from receiving the event.
    """

    def __init__(self):
        self._handlers = []

    def __iadd__(self, handler):
        return self.add(handler)

    def __isub__(self, handler):
        return self.remove(handler)

    def add(self, handler):
        self._handlers.append(handler)
        return self

    def remove(self, handler):
        if handler in self._handlers:
            self._handlers.remove(handler)
        return self

    def handlers(self):
        return tuple(self._handlers)

    def fire(self, *args, **kwargs):
        self._fire(*args, **kwargs)

    def fire_all(self, events):
        for e in events:
            self._fire(e)

    def _fire(self, *args, **kwargs):
        # copy, so handlers may unsubscribe while being notified
        for handler in tuple(self._handlers):
            try:
                handler(*args, **kwargs)
            except Exception as e:
                logger.exception("event handler %s failed: %s" % (handler, e))
