import unittest
from unittest.mock import Mock, call

from hamcrest import assert_that, is_, empty

from veadotube.support.events import EventSource


class EventSourceTest(unittest.TestCase):

    def test_handlers_empty(self):
        sut = EventSource()
        assert_that(sut.handlers(), is_(empty()))

    def test_handlers_not_empty(self):
        sut = EventSource()
        handler = Mock()
        sut.add(handler)
        assert_that(list(sut.handlers()), is_([handler]))

    def test_no_listeners(self):
        sut = EventSource()
        sut.fire(1)

    def test_manage_handlers(self):
        sut = EventSource()
        m1 = Mock()
        sut.add(m1)
        assert_that(sut._handlers, is_([m1]))

        sut.remove(m1)
        assert_that(sut._handlers, is_([]))

        sut.remove(m1)
        assert_that(sut._handlers, is_([]))

        sut += m1
        assert_that(sut._handlers, is_([m1]))

        sut -= m1
        assert_that(sut._handlers, is_([]))

    def test_fire_all_with_empty_events(self):
        sut = EventSource()
        m1 = Mock()
        sut.add(m1)
        sut.fire_all([])
        m1.assert_not_called()

    def test_listeners_in_order(self):
        sut = EventSource()
        calls = Mock()
        sut += calls.first
        sut += calls.second
        sut.fire(1, v="hey")
        assert_that(calls.mock_calls, is_([call.first(1, v="hey"), call.second(1, v="hey")]))

    def test_fire_all_preserves_order(self):
        sut = EventSource()
        l1 = Mock()
        sut += l1
        sut.fire_all([1, 2, 3])
        assert_that(l1.mock_calls, is_([call(1), call(2), call(3)]))

    def test_failing_handler_does_not_stop_delivery(self):
        sut = EventSource()
        failing = Mock(side_effect=RuntimeError("boom"))
        l2 = Mock()
        sut += failing
        sut += l2
        sut.fire("event")
        failing.assert_called_once_with("event")
        l2.assert_called_once_with("event")

    def test_handler_can_unsubscribe_while_notified(self):
        sut = EventSource()
        l2 = Mock()

        def once(event):
            sut.remove(once)

        sut += once
        sut += l2
        sut.fire("event")
        l2.assert_called_once_with("event")
        assert_that(sut.handlers(), is_((l2,)))
