"""
A websocket session with one veadotube instance.

The connection opens the websocket, performs the listener handshake, decodes inbound frames and, when the
transport closes without the caller asking for it, schedules reconnection attempts with the retry strategy.
Everything runs on the asyncio event loop that called connect(); events are fired on that loop in session order.
"""
import asyncio
import json
import logging
from urllib.parse import quote

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedError
from websockets.protocol import State

from veadotube.connector.base import ConnectionState, ConnectorConnectedEvent, ConnectorDisconnectedEvent, \
    ConnectorErrorEvent, ConnectorMessageEvent, ConnectorReconnectScheduledEvent, ConnectorReconnectFailedEvent, \
    ConnectionInfo
from veadotube.protocol import requests
from veadotube.support.events import EventSource
from veadotube.support.retry_strategy import RetryStrategy

logger = logging.getLogger(__name__)

ABNORMAL_CLOSURE = 1006

# queued after the last outgoing message to close the socket
_CLOSE = object()


def build_uri(server, name):
    """
    The websocket address of an instance. The connection name is percent-encoded the way browsers encode a URI
    component.

    >>> build_uri('127.0.0.1:8080', 'veadotube-py-abc')
    'ws://127.0.0.1:8080?n=veadotube-py-abc'
    >>> build_uri('localhost:1', "my client/1 (test)")
    'ws://localhost:1?n=my%20client%2F1%20(test)'
    """
    return 'ws://%s?n=%s' % (server, quote(name, safe="-_.!~*'()"))


class VeadotubeConnection:
    """
    Maintains the websocket session to one instance.

    :param uri: the websocket address, see build_uri()
    :param instance: the Instance this connection belongs to
    :param decoder: the MessageDecoder for inbound frames
    :param listener_token: the token sent with listen and unlisten requests
    :param retry_strategy: decides the delay before each reconnection attempt, and when to give up
    :param open_timeout: seconds to wait for the websocket to open, or None to wait indefinitely
    :param connect: opens the websocket. Called as connect(uri, open_timeout=...)
    """

    def __init__(self, uri, instance, decoder, listener_token, retry_strategy: RetryStrategy, open_timeout=None,
                 connect=websockets.connect):
        self.uri = uri
        self._instance = instance
        self.decoder = decoder
        self.listener_token = listener_token
        self.retry_strategy = retry_strategy
        self.open_timeout = open_timeout
        self._connect = connect
        self.events = EventSource()
        self.state = ConnectionState.DISCONNECTED
        self.websocket = None
        self.reconnect_attempts = 0
        self.last_error = None
        self._closed = False
        self._task = None
        self._outgoing = None
        self._reconnect_handle = None

    @property
    def instance(self):
        return self._instance

    @property
    def connected(self) -> bool:
        websocket = self.websocket
        return self.state is ConnectionState.OPEN and websocket is not None and websocket.state is State.OPEN

    def connect(self):
        """
        Starts opening the websocket. Only has an effect while disconnected or waiting to reconnect, and never
        after close(). Must be called on the event loop.
        :return: True if an attempt was started
        """
        if self._closed or self.state not in (ConnectionState.DISCONNECTED, ConnectionState.RECONNECTING):
            return False
        self._reconnect_handle = None
        self.state = ConnectionState.CONNECTING
        logger.info("connecting to %s" % self.uri)
        self._task = asyncio.get_running_loop().create_task(self._session())
        return True

    async def _session(self):
        try:
            websocket = await self._connect(self.uri, open_timeout=self.open_timeout)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._error(e)
            self._transport_closed(ABNORMAL_CLOSURE, str(e))
            return

        self.websocket = websocket
        self._outgoing = asyncio.Queue()
        self.state = ConnectionState.OPEN
        self.reconnect_attempts = 0
        logger.info("connected to %s" % self.uri)
        self.events.fire(ConnectorConnectedEvent(self))
        self._handshake()

        writer = asyncio.get_running_loop().create_task(self._write(websocket, self._outgoing))
        try:
            await self._read(websocket)
        finally:
            if self.state is ConnectionState.CLOSING:
                await writer
            else:
                writer.cancel()
        self._transport_closed(websocket.close_code or ABNORMAL_CLOSURE, websocket.close_reason or '')

    def _handshake(self):
        self.request_state_list()
        self.request_state_peek()
        self.start_listener()

    async def _read(self, websocket):
        try:
            async for frame in websocket:
                self._frame(frame)
        except ConnectionClosedError as e:
            self._error(e)

    async def _write(self, websocket, outgoing):
        while True:
            message = await outgoing.get()
            try:
                if message is _CLOSE:
                    await websocket.close()
                    return
                await websocket.send(message)
            except ConnectionClosed:
                return
            except Exception as e:
                self._error(e)
                # nothing reads the queue from here on, so end the session
                await websocket.close()
                return

    def _frame(self, frame):
        if isinstance(frame, bytes):
            frame = frame.decode('utf-8', errors='replace')
        text = frame.rstrip('\x00').strip()
        try:
            message = self.decoder.decode(text)
        except Exception:
            logger.exception("unable to decode frame from %s: %.80r" % (self.uri, text))
            return
        self.events.fire(ConnectorMessageEvent(self, message))

    def _error(self, error):
        self.last_error = error
        logger.warning("websocket error on %s: %s" % (self.uri, error))
        self.events.fire(ConnectorErrorEvent(self, error))

    def _transport_closed(self, code, reason):
        self.websocket = None
        self._outgoing = None
        self.state = ConnectionState.DISCONNECTED
        logger.info("disconnected from %s: code=%s, reason=%s" % (self.uri, code, reason or '-'))
        self.events.fire(ConnectorDisconnectedEvent(self, code, reason))
        if not self._closed:
            self._schedule_reconnect()

    def _schedule_reconnect(self):
        if self.retry_strategy.exhausted(self.reconnect_attempts):
            logger.warning("giving up on %s after %d attempts" % (self.uri, self.reconnect_attempts))
            self.events.fire(ConnectorReconnectFailedEvent(self))
            return
        self.reconnect_attempts += 1
        delay = self.retry_strategy(self.reconnect_attempts)
        self.state = ConnectionState.RECONNECTING
        logger.info("reconnecting to %s in %ss (attempt %d)" % (self.uri, delay, self.reconnect_attempts))
        self.events.fire(ConnectorReconnectScheduledEvent(self, self.reconnect_attempts, delay))
        if self.state is ConnectionState.RECONNECTING:
            self._reconnect_handle = asyncio.get_running_loop().call_later(delay, self._reconnect)

    def _reconnect(self):
        self._reconnect_handle = None
        if self.state is ConnectionState.RECONNECTING:
            self.connect()

    def send(self, request) -> bool:
        """
        Queues a request to be sent as a JSON text frame. Requests are sent in the order they are queued.
        :return: False when the websocket is not open, in which case nothing is sent.
        """
        if not self.connected or self._outgoing is None:
            logger.warning("not sending %s to %s: websocket is not open" % (request.get('event'), self.uri))
            return False
        self._outgoing.put_nowait(json.dumps(request))
        return True

    def request_state_list(self):
        return self.send(requests.state_list_request())

    def request_state_peek(self):
        return self.send(requests.state_peek_request())

    def start_listener(self):
        return self.send(requests.listen_request(self.listener_token))

    def stop_listener(self):
        return self.send(requests.unlisten_request(self.listener_token))

    def set_avatar_state(self, state_id):
        return self.send(requests.set_state_request(state_id))

    def request_thumbnail(self, state_id, width=None, height=None):
        return self.send(requests.thumbnail_request(state_id, width, height))

    def request_instance_info(self):
        return self.send(requests.instance_info_request())

    def request_node_list(self):
        return self.send(requests.node_list_request())

    def close(self):
        """
        Closes the connection for good. No reconnection is attempted afterwards, including one already scheduled.
        Closing an already closed connection does nothing.
        """
        if self._closed:
            return
        self._closed = True
        self.reconnect_attempts = self.retry_strategy.max_attempts
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

        if self.state is ConnectionState.OPEN:
            if self.connected:
                self.stop_listener()
            self.state = ConnectionState.CLOSING
            self._outgoing.put_nowait(_CLOSE)
        elif self.state is ConnectionState.CONNECTING:
            self._task.cancel()
            self.state = ConnectionState.DISCONNECTED
        else:
            self.state = ConnectionState.DISCONNECTED
        logger.info("closed connection to %s" % self.uri)

    async def wait_closed(self):
        """ waits until the session, if one was started, has finished """
        task = self._task
        if task is not None:
            await asyncio.wait([task])

    def info(self) -> ConnectionInfo:
        return ConnectionInfo(self._instance.id, self.uri, self.connected, self.reconnect_attempts,
                              self.last_error)

    def __str__(self):
        return "VeadotubeConnection(%s, %s)" % (self.uri, self.state.name)
