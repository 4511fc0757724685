import logging

from veadotube.support.events import EventSource

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Keeps one connection for each available instance, keyed by instance id.

    Connections are added via the "available()" method and removed via "unavailable()". A connection that is
    replaced or removed is closed and stops reporting events, so a connection never outlives its instance.

    The ConnectorEvent instances fired by each managed connection are fired again on this manager's events,
    in the order the connection fired them.

    :param connection_factory: called as connection_factory(instance, name) to create an unopened connection
    """
    def __init__(self, connection_factory):
        self.connection_factory = connection_factory
        self._connections = dict()   # a map from instance id to connection
        self._closing = []
        self.events = EventSource()

    def _connection_events(self, *args, **kwargs):
        """ propagates connection events to the manager's listeners """
        self.events.fire(*args, **kwargs)

    def available(self, instance, name=None):
        """ Notifies this manager that an instance is available.
            Any previous connection to the instance is closed before it is replaced with a new connection,
            which is started and returned.
            :param instance: the Instance to connect to
            :param name: the connection name announced to the instance, or None for the default name
        """
        self._close(self._connections.pop(instance.id, None))
        connection = self.connection_factory(instance, name)
        connection.events.add(self._connection_events)
        self._connections[instance.id] = connection
        logger.info("managing connection to instance %s at %s" % (instance.id, instance.server))
        connection.connect()
        return connection

    def unavailable(self, instance_id):
        """ register the given instance as being unavailable.
        Its connection is closed and removed from the managed connections. """
        connection = self._connections.pop(instance_id, None)
        if connection is not None:
            logger.info("instance %s gone, closing its connection" % instance_id)
        self._close(connection)

    def _close(self, connection):
        if connection is None:
            return
        connection.events.remove(self._connection_events)
        connection.close()
        self._closing.append(connection)

    def get(self, instance_id):
        return self._connections.get(instance_id)

    @property
    def connections(self):
        """
        retrieves a mapping from the instance id to the connection.
        Note that connections may or may not be connected.
        """
        return dict(self._connections)

    def close_all(self):
        for instance_id in list(self._connections):
            self.unavailable(instance_id)

    async def wait_closed(self):
        """ waits for the sessions of all connections closed so far to finish """
        closing, self._closing = self._closing, []
        for connection in closing:
            await connection.wait_closed()
