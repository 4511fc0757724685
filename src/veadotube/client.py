"""
The VeadotubeClient puts the pieces together:

discovery -> connection manager -> connections -> decoder -> router -> cache

Instances found in the instances directory are connected to (when auto_connect is set), inbound messages are
routed to semantic events, and the cache keeps the latest state data. When an instance goes away its connection
is closed and its cache entries are cleared.

The client fires the discovery events and the events of all its connections on `events`. Router events are on
`router.events`, cache events on `cache.events`.
"""
import logging

import websockets

from veadotube.cache import StateCache
from veadotube.conduit.discovery import InstanceDiscovery, ResourceAvailableEvent, ResourceUpdatedEvent, \
    ResourceUnavailableEvent
from veadotube.connector.base import ConnectorMessageEvent
from veadotube.connector.websocketconn import VeadotubeConnection, build_uri
from veadotube.connector_maintainance import ConnectionManager
from veadotube.protocol.messages import MessageDecoder
from veadotube.protocol.router import MessageRouter
from veadotube.safeparse import SafeParser
from veadotube.settings import ClientConfig
from veadotube.support.events import EventSource
from veadotube.support.retry_strategy import LinearRetryStrategy

logger = logging.getLogger(__name__)


class VeadotubeClient:
    """
    :param config: the ClientConfig, defaults are used when not given. See settings.load_client_config()
    :param parser: the SafeParser shared by discovery and message decoding
    :param observer_factory: creates the watchdog observer for the instances directory
    :param connect: opens a websocket, websockets.connect when not given
    """

    def __init__(self, config: ClientConfig=None, parser=None, observer_factory=None, connect=None):
        self.config = config or ClientConfig()
        self.parser = parser or SafeParser()
        self.decoder = MessageDecoder(self.parser)
        self.router = MessageRouter()
        self.cache = StateCache()
        self.events = EventSource()
        self._connect = connect or websockets.connect

        discovery_options = dict(default_name=self.config.default_instance_name,
                                 default_version=self.config.default_instance_version)
        if observer_factory is not None:
            discovery_options['observer_factory'] = observer_factory
        self.discovery = InstanceDiscovery(self.config.instances_path, self.parser, **discovery_options)
        self.manager = ConnectionManager(self._new_connection)

        self.discovery.listeners.add(self._discovery_event)
        self.manager.events.add(self._connection_event)
        self.router.events.add(self.cache.handle_event)

    def start_instance_discovery(self, loop=None):
        """
        Starts watching the instances directory. Instances already running are discovered, and connected to
        when auto_connect is set, before this method returns. Call from a coroutine running on the event loop.
        raises DiscoveryDirectoryNotFoundError if the instances directory does not exist.
        """
        self.discovery.start(loop)

    def _discovery_event(self, event):
        if isinstance(event, (ResourceAvailableEvent, ResourceUpdatedEvent)):
            if self.config.auto_connect:
                self.create_connection(event.resource)
        elif isinstance(event, ResourceUnavailableEvent):
            self.manager.unavailable(event.key)
            self.cache.clear_instance(event.key)
        self.events.fire(event)

    def _connection_event(self, event):
        self.events.fire(event)
        if isinstance(event, ConnectorMessageEvent):
            self.router.route(event.instance_id, event.message)

    def create_connection(self, instance, name=None) -> VeadotubeConnection:
        """
        Connects to an instance, replacing any existing connection to it.
        :param name: the connection name shown by the instance. Defaults to the configured prefix followed by
            the instance id.
        """
        return self.manager.available(instance, name)

    def _new_connection(self, instance, name=None):
        name = name or self.config.connection_name_prefix + str(instance.id)
        settings = self.config.connection
        retry = LinearRetryStrategy(settings.reconnect_delay, settings.max_reconnect_attempts)
        return VeadotubeConnection(build_uri(instance.server, name), instance, self.decoder,
                                   self.config.listener_token, retry, open_timeout=settings.connection_timeout,
                                   connect=self._connect)

    @property
    def instances(self):
        """ a mapping from instance id to the Instance, for the running instances """
        return self.discovery.instances

    @property
    def connections(self):
        return self.manager.connections

    def get_connection(self, instance_id):
        return self.manager.get(instance_id)

    def close(self):
        """ stops discovery, closes all connections and forgets the instances and their cached data """
        self.discovery.stop()
        self.manager.close_all()
        self.cache.clear()
        logger.info("veadotube client closed")

    async def wait_closed(self):
        await self.manager.wait_closed()
        await self.discovery.wait_stopped()
