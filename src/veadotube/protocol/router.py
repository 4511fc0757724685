"""
Routing of decoded messages to semantic events.

For every message the router fires a MessageReceivedEvent, followed by the event specific to the message's
variant. All events carry the id of the instance the message came from and the frame's channel.
"""
import logging

from veadotube.protocol.messages import MessageKind, PayloadKind, ResultMessage
from veadotube.support.events import EventSource
from veadotube.support.mixins import CommonEqualityMixin, StringerMixin

logger = logging.getLogger(__name__)


class InstanceEvent(CommonEqualityMixin, StringerMixin):
    """ base class for events about one instance. """
    def __init__(self, instance_id, channel=None):
        self.instance_id = instance_id
        self.channel = channel


class MessageReceivedEvent(InstanceEvent):
    """ Any message was received. """
    def __init__(self, instance_id, message: ResultMessage):
        super().__init__(instance_id, message.channel)
        self.message = message


class EntryListEvent(InstanceEvent):
    """ A list of entries was received. """
    def __init__(self, instance_id, entries, channel=None):
        super().__init__(instance_id, channel)
        self.entries = entries


class NodeListEvent(EntryListEvent):
    """ The instance's node list, the reply to a node list request. """


class StateListEvent(InstanceEvent):
    def __init__(self, instance_id, states, channel=None):
        super().__init__(instance_id, channel)
        self.states = states


class ThumbnailEvent(InstanceEvent):
    def __init__(self, instance_id, thumbnail, channel=None):
        super().__init__(instance_id, channel)
        self.thumbnail = thumbnail


class StateEvent(InstanceEvent):
    """ A payload about a single state whose event is neither peek nor set. """
    def __init__(self, instance_id, event, state, channel=None):
        super().__init__(instance_id, channel)
        self.event = event
        self.state = state


class StatePeekedEvent(InstanceEvent):
    """ The reply to a peek request: the current state. """
    def __init__(self, instance_id, state, channel=None):
        super().__init__(instance_id, channel)
        self.state = state


class StateChangedEvent(InstanceEvent):
    """ The instance switched to another state. """
    def __init__(self, instance_id, state, channel=None):
        super().__init__(instance_id, channel)
        self.state = state


class UnrecognizedMessageEvent(InstanceEvent):
    """ A message that matched none of the known shapes. The raw value is kept for newer protocol additions. """
    def __init__(self, instance_id, message: ResultMessage):
        super().__init__(instance_id, message.channel)
        self.message = message
        self.raw = message.raw


class MessageRouter:
    """
    Fires a semantic event for each decoded message. The router is synchronous and keeps no state,
    so one router serves all connections.
    """

    def __init__(self):
        self.events = EventSource()

    def route(self, instance_id, message: ResultMessage):
        self.events.fire(MessageReceivedEvent(instance_id, message))
        for event in self.events_for(instance_id, message):
            self.events.fire(event)

    def events_for(self, instance_id, message: ResultMessage):
        """ the semantic events for a message, in the order they are fired """
        channel = message.channel
        if message.kind is MessageKind.ENTRY_LIST:
            events = [EntryListEvent(instance_id, message.entries, channel)]
            if message.event == 'list':
                events.append(NodeListEvent(instance_id, message.entries, channel))
            return events
        if message.kind is MessageKind.PAYLOAD:
            payload = message.payload
            if payload.kind is PayloadKind.STATE_LIST:
                return [StateListEvent(instance_id, payload.states, channel)]
            if payload.kind is PayloadKind.THUMBNAIL:
                return [ThumbnailEvent(instance_id, payload.thumbnail, channel)]
            if payload.kind is PayloadKind.STATE:
                if payload.event == 'peek':
                    return [StatePeekedEvent(instance_id, payload.state, channel)]
                if payload.event == 'set':
                    return [StateChangedEvent(instance_id, payload.state, channel)]
                return [StateEvent(instance_id, payload.event, payload.state, channel)]
        logger.debug("unrecognized message from %s: %s" % (instance_id, message.raw))
        return [UnrecognizedMessageEvent(instance_id, message)]
