from enum import Enum

from veadotube.support.mixins import CommonEqualityMixin, StringerMixin


class ConnectorError(Exception):
    """ Indicates an error condition with a connection. """


class ConnectionNotConnectedError(ConnectorError):
    """ Indicates a connection is in the disconnected state when a connection is required. """


class ConnectionState(Enum):
    """
    The lifecycle of a connection. A connection starts DISCONNECTED, and returns there after close(), or when
    reconnection gives up.
    """
    DISCONNECTED = 'disconnected'
    CONNECTING = 'connecting'
    OPEN = 'open'
    CLOSING = 'closing'
    RECONNECTING = 'reconnecting'


class ConnectorEvent:
    """ base class for connector events. """
    def __init__(self, connection):
        self.connection = connection

    @property
    def instance_id(self):
        return self.connection.instance.id


class ConnectorConnectedEvent(ConnectorEvent):
    """ The connection was opened. The handshake requests are sent right after this event. """


class ConnectorDisconnectedEvent(ConnectorEvent):
    """ The transport closed. """
    def __init__(self, connection, code, reason):
        super().__init__(connection)
        self.code = code
        self.reason = reason


class ConnectorErrorEvent(ConnectorEvent):
    """ A transport error. Errors do not trigger reconnection by themselves, the close that follows does. """
    def __init__(self, connection, error):
        super().__init__(connection)
        self.error = error


class ConnectorMessageEvent(ConnectorEvent):
    """ A frame was received and decoded. """
    def __init__(self, connection, message):
        super().__init__(connection)
        self.message = message


class ConnectorReconnectScheduledEvent(ConnectorEvent):
    """ A reconnection attempt will be made after delay seconds. """
    def __init__(self, connection, attempt, delay):
        super().__init__(connection)
        self.attempt = attempt
        self.delay = delay


class ConnectorReconnectFailedEvent(ConnectorEvent):
    """ All reconnection attempts were used. The connection stays disconnected. """


class ConnectionInfo(CommonEqualityMixin, StringerMixin):
    """ A snapshot of a connection's status. """
    def __init__(self, instance_id, uri, connected, reconnect_attempts, last_error=None):
        self.instance_id = instance_id
        self.uri = uri
        self.connected = connected
        self.reconnect_attempts = reconnect_attempts
        self.last_error = last_error
