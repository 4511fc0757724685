import os
import tempfile
import unittest
from unittest.mock import Mock

from hamcrest import assert_that, is_, has_item, instance_of, empty, calling, raises, is_not, none, has_length

from veadotube.cache import CacheStats
from veadotube.client import VeadotubeClient
from veadotube.conduit.discovery import ResourceAvailableEvent, ResourceUnavailableEvent, \
    DiscoveryDirectoryNotFoundError
from veadotube.connector.base import ConnectionState, ConnectorConnectedEvent
from veadotube.connector.websocketconn_test import FakeWebSocket, eventually
from veadotube.model import Instance, State
from veadotube.settings import ClientConfig


class VeadotubeClientTest(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.tempdir = tempfile.TemporaryDirectory()
        self.observer = Mock()
        self.sockets = {}
        self.connect_calls = []
        self.sut = self.client(ClientConfig(instances_dir=self.tempdir.name))

    def client(self, config):
        sut = VeadotubeClient(config, observer_factory=Mock(return_value=self.observer), connect=self.fake_connect)
        self.events = []
        sut.events.add(self.events.append)
        return sut

    async def asyncTearDown(self):
        self.sut.close()
        await self.sut.wait_closed()
        self.tempdir.cleanup()

    async def fake_connect(self, uri, open_timeout=None):
        self.connect_calls.append((uri, open_timeout))
        ws = self.sockets[uri] = FakeWebSocket()
        return ws

    def write(self, filename, content):
        with open(os.path.join(self.tempdir.name, filename), 'w', encoding='utf-8') as f:
            f.write(content)

    async def start_with_instance(self):
        self.write("abc", '{"server":"127.0.0.1:1"}')
        self.sut.start_instance_discovery()
        uri = 'ws://127.0.0.1:1?n=veadotube-py-abc'
        await eventually(lambda: uri in self.sockets and len(self.sockets[uri].sent) == 3)
        return self.sockets[uri]

    async def test_running_instance_is_connected(self):
        await self.start_with_instance()
        assert_that(self.connect_calls, is_([('ws://127.0.0.1:1?n=veadotube-py-abc', 10.0)]))
        assert_that(self.sut.instances, is_({"abc": Instance("abc", "127.0.0.1:1", "veadotube", "2.1")}))
        assert_that(self.sut.get_connection("abc").state, is_(ConnectionState.OPEN))
        assert_that(self.events, has_item(instance_of(ResourceAvailableEvent)))
        assert_that(self.events, has_item(instance_of(ConnectorConnectedEvent)))

    async def test_messages_reach_the_cache(self):
        ws = await self.start_with_instance()
        ws.feed('{"event":"payload","type":"stateEvents","id":"mini","payload":{"event":"list",'
                '"states":[{"id":"a","name":"A"}]}}')
        ws.feed('{"event":"payload","type":"stateEvents","id":"mini","payload":{"event":"set","state":"a"}}')
        await eventually(lambda: self.sut.cache.current_state("abc") == "a")
        assert_that(self.sut.cache.states("abc"), is_([State("a", "A")]))

    async def test_gone_instance_is_disconnected_and_forgotten(self):
        ws = await self.start_with_instance()
        ws.feed('{"event":"payload","payload":{"event":"peek","state":"a"}}')
        await eventually(lambda: self.sut.cache.current_state("abc") == "a")
        connection = self.sut.get_connection("abc")
        os.remove(os.path.join(self.tempdir.name, "abc"))
        self.sut.discovery.process_file("abc")
        assert_that(self.sut.connections, is_({}))
        assert_that(self.sut.instances, is_({}))
        assert_that(self.sut.cache.stats(), is_(CacheStats(0, 0, 0)))
        assert_that([e for e in self.events if isinstance(e, ResourceUnavailableEvent)], is_not(empty()))
        await connection.wait_closed()
        assert_that(connection.state, is_(ConnectionState.DISCONNECTED))
        assert_that(ws.sent[-1]["event"], is_("unlisten"))

    async def test_updated_instance_is_reconnected(self):
        await self.start_with_instance()
        first = self.sut.get_connection("abc")
        self.write("abc", '{"server":"127.0.0.1:2"}')
        self.sut.discovery.process_file("abc")
        await eventually(lambda: 'ws://127.0.0.1:2?n=veadotube-py-abc' in self.sockets)
        assert_that(first.state, is_not(ConnectionState.OPEN))
        assert_that(self.sut.get_connection("abc").uri, is_('ws://127.0.0.1:2?n=veadotube-py-abc'))

    async def test_auto_connect_off(self):
        self.sut = self.client(ClientConfig(instances_dir=self.tempdir.name, auto_connect=False))
        self.write("abc", '{"server":"127.0.0.1:1"}')
        self.sut.start_instance_discovery()
        assert_that(list(self.sut.instances), is_(["abc"]))
        assert_that(self.sut.connections, is_({}))

    async def test_create_connection_with_name(self):
        connection = self.sut.create_connection(Instance("x", "h:9", "veadotube", "2.1"), "my app")
        assert_that(connection.uri, is_('ws://h:9?n=my%20app'))
        assert_that(self.sut.get_connection("x"), is_(connection))

    async def test_missing_directory(self):
        self.sut = self.client(ClientConfig(instances_dir=os.path.join(self.tempdir.name, "missing")))
        assert_that(calling(self.sut.start_instance_discovery), raises(DiscoveryDirectoryNotFoundError))

    async def test_close(self):
        await self.start_with_instance()
        connection = self.sut.get_connection("abc")
        self.sut.close()
        await self.sut.wait_closed()
        self.observer.stop.assert_called_once_with()
        assert_that(self.sut.connections, is_({}))
        assert_that(connection.state, is_(ConnectionState.DISCONNECTED))
        assert_that(self.sut.get_connection("abc"), is_(none()))
        assert_that(self.sut.instances, is_({}))
        self.observer.join.assert_called_once_with()

    async def test_close_then_restart_reconnects(self):
        ws = await self.start_with_instance()
        ws.feed('{"event":"payload","payload":{"event":"peek","state":"a"}}')
        await eventually(lambda: self.sut.cache.current_state("abc") == "a")
        self.sut.close()
        await self.sut.wait_closed()
        assert_that(self.sut.cache.stats(), is_(CacheStats(0, 0, 0)))
        self.sut.start_instance_discovery()
        assert_that(list(self.sut.instances), is_(["abc"]))
        assert_that(list(self.sut.connections), is_(["abc"]))
        await eventually(lambda: self.sut.get_connection("abc").state is ConnectionState.OPEN)
        assert_that(self.connect_calls, has_length(2))
