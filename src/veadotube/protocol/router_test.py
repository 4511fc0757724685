import unittest

from hamcrest import assert_that, is_, instance_of, contains_exactly

from veadotube.model import Entry, State, Thumbnail
from veadotube.protocol.messages import MessageDecoder, classify
from veadotube.protocol.router import MessageRouter, MessageReceivedEvent, EntryListEvent, NodeListEvent, \
    StateListEvent, ThumbnailEvent, StatePeekedEvent, StateChangedEvent, StateEvent, UnrecognizedMessageEvent
from veadotube.safeparse import SafeParser


def payload(**fields):
    return {"event": "payload", "type": "stateEvents", "id": "mini", "payload": fields}


class MessageRouterTest(unittest.TestCase):
    def setUp(self):
        self.sut = MessageRouter()
        self.events = []
        self.sut.events.add(self.events.append)

    def route(self, value, channel=None):
        message = classify(value, channel)
        self.sut.route("abc", message)
        return message

    def test_every_message_is_received_first(self):
        message = self.route({"event": "info"})
        assert_that(self.events[0], is_(MessageReceivedEvent("abc", message)))

    def test_node_list_frame(self):
        decoder = MessageDecoder(SafeParser())
        message = decoder.decode('nodes:{"event":"list","entries":[{"type":"stateEvents","id":"mini",'
                                 '"name":"mini"}]}')
        self.sut.route("abc", message)
        entries = [Entry("stateEvents", "mini", "mini")]
        assert_that(self.events, contains_exactly(
            instance_of(MessageReceivedEvent),
            is_(EntryListEvent("abc", entries, "nodes")),
            is_(NodeListEvent("abc", entries, "nodes"))))

    def test_entry_list_without_list_event(self):
        self.route({"event": "other", "entries": []})
        assert_that(self.events[1:], is_([EntryListEvent("abc", [], None)]))

    def test_state_list(self):
        self.route(payload(event="list", states=[{"id": "a", "name": "A"}]))
        assert_that(self.events[1:], is_([StateListEvent("abc", [State("a", "A")])]))

    def test_thumbnail(self):
        self.route(payload(event="thumb", state="a", width=1, height=1, png="AAAA"))
        assert_that(self.events[1:], is_([ThumbnailEvent("abc", Thumbnail("a", 1, 1, "AAAA"))]))

    def test_state_peeked(self):
        self.route(payload(event="peek", state="happy"), "data")
        assert_that(self.events[1:], is_([StatePeekedEvent("abc", "happy", "data")]))

    def test_state_changed(self):
        self.route(payload(event="set", state="sad"))
        assert_that(self.events[1:], is_([StateChangedEvent("abc", "sad")]))

    def test_other_state_event(self):
        self.route(payload(event="hover", state="sad"))
        assert_that(self.events[1:], is_([StateEvent("abc", "hover", "sad")]))

    def test_info_is_unrecognized(self):
        value = {"event": "info", "server": "h:1"}
        message = self.route(value)
        assert_that(self.events[1:], is_([UnrecognizedMessageEvent("abc", message)]))
        assert_that(self.events[1].raw, is_(value))

    def test_unknown_payload_is_unrecognized(self):
        self.route(payload(event="future"))
        assert_that(self.events[1], instance_of(UnrecognizedMessageEvent))

    def test_bare_value_is_unrecognized(self):
        self.route(42)
        assert_that(self.events[1].raw, is_(42))

    def test_events_for_does_not_fire(self):
        events = self.sut.events_for("abc", classify(payload(event="set", state="x")))
        assert_that(events, is_([StateChangedEvent("abc", "x")]))
        assert_that(self.events, is_([]))
