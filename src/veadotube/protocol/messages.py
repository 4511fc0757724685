"""
Decoding of the messages sent by a veadotube instance.

A frame is JSON text, optionally preceded by a channel name and a colon, such as "nodes:{...}". The decoder
separates the channel, parses the body with the SafeParser and classifies the result into one of the
ResultMessage variants. The variant is chosen by which fields are present:

- entries (a list)  -> EntryListMessage
- payload (a dict)  -> PayloadMessage, whose payload is in turn classified:
    - states (a list) -> StateListPayload
    - png             -> ThumbnailPayload
    - state           -> StatePayload (a peek response or a set notification)
    - otherwise       -> UnknownPayload
- otherwise         -> InfoMessage

Each variant carries its discriminant in `kind`, so consumers match on the tag rather than on field presence.
"""
from enum import Enum

from veadotube.model import Entry, State, Thumbnail
from veadotube.support.mixins import CommonEqualityMixin, StringerMixin


class MessageKind(Enum):
    ENTRY_LIST = 'entries'
    PAYLOAD = 'payload'
    INFO = 'info'


class PayloadKind(Enum):
    STATE_LIST = 'states'
    THUMBNAIL = 'png'
    STATE = 'state'
    UNKNOWN = 'unknown'


class ResultPayload(CommonEqualityMixin, StringerMixin):
    kind = None

    def __init__(self, event, raw):
        self.event = event
        self.raw = raw


class StateListPayload(ResultPayload):
    kind = PayloadKind.STATE_LIST

    def __init__(self, event, raw, states):
        super().__init__(event, raw)
        self.states = states


class ThumbnailPayload(ResultPayload):
    kind = PayloadKind.THUMBNAIL

    def __init__(self, event, raw, thumbnail: Thumbnail):
        super().__init__(event, raw)
        self.thumbnail = thumbnail


class StatePayload(ResultPayload):
    kind = PayloadKind.STATE

    def __init__(self, event, raw, state):
        super().__init__(event, raw)
        self.state = state


class UnknownPayload(ResultPayload):
    kind = PayloadKind.UNKNOWN


class ResultMessage(CommonEqualityMixin, StringerMixin):
    """
    A decoded message.
    :param event: the message's event field, if it has one
    :param raw: the parsed value the message was built from
    :param channel: the channel prefix of the frame, or None
    """
    kind = None

    def __init__(self, event, raw, channel=None):
        self.event = event
        self.raw = raw
        self.channel = channel


class EntryListMessage(ResultMessage):
    kind = MessageKind.ENTRY_LIST

    def __init__(self, event, raw, entries, channel=None):
        super().__init__(event, raw, channel)
        self.entries = entries


class PayloadMessage(ResultMessage):
    kind = MessageKind.PAYLOAD

    def __init__(self, event, raw, payload: ResultPayload, channel=None):
        super().__init__(event, raw, channel)
        self.type = raw.get('type')
        self.id = raw.get('id')
        self.name = raw.get('name')
        self.payload = payload


class InfoMessage(ResultMessage):
    """ A message with neither entries nor payload, such as the reply to an info request. """
    kind = MessageKind.INFO


def split_channel(text):
    """
    Separates the channel prefix from a frame. The prefix is the text before the first colon, when that colon
    comes before any '{' or '['.

    >>> split_channel('nodes:{"event":"list"}')
    ('nodes', '{"event":"list"}')
    >>> split_channel('{"event":"info","server":"a:1"}')
    (None, '{"event":"info","server":"a:1"}')
    >>> split_channel(':[1]')
    (None, ':[1]')
    """
    colon = text.find(':')
    starts = [i for i in (text.find('{'), text.find('[')) if i != -1]
    if colon > 0 and (not starts or colon < min(starts)):
        return text[:colon], text[colon + 1:]
    return None, text


def _event(value: dict):
    event = value.get('event')
    return event if isinstance(event, str) else None


def classify_payload(payload: dict) -> ResultPayload:
    event = _event(payload)
    if isinstance(payload.get('states'), list):
        states = [State.from_dict(s) for s in payload['states'] if isinstance(s, dict)]
        return StateListPayload(event, payload, states)
    if 'png' in payload:
        return ThumbnailPayload(event, payload, Thumbnail.from_dict(payload))
    if 'state' in payload and 'states' not in payload:
        return StatePayload(event, payload, payload['state'])
    return UnknownPayload(event, payload)


def classify(value, channel=None) -> ResultMessage:
    """
    Builds the ResultMessage variant for a parsed message.
    Values that are not objects become an InfoMessage holding the value, so nothing is lost.
    """
    if not isinstance(value, dict):
        return InfoMessage(None, value, channel)
    event = _event(value)
    if isinstance(value.get('entries'), list):
        entries = [Entry.from_dict(e) for e in value['entries'] if isinstance(e, dict)]
        return EntryListMessage(event, value, entries, channel)
    if isinstance(value.get('payload'), dict):
        return PayloadMessage(event, value, classify_payload(value['payload']), channel)
    return InfoMessage(event, value, channel)


class MessageDecoder:
    """
    Turns inbound frames into ResultMessage instances.

    :param parser: the SafeParser used for frame bodies, so bodies that are not quite JSON are still read.
    """
    def __init__(self, parser):
        self.parser = parser

    def decode(self, frame) -> ResultMessage:
        """
        :param frame: the frame text, or a value that has already been parsed.
        """
        if not isinstance(frame, str):
            return classify(frame)
        channel, body = split_channel(frame.strip())
        return classify(self.parser.parse(body), channel)
