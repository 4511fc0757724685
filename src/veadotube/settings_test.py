import os
import tempfile
import unittest
from unittest.mock import patch

from configobj import ConfigObjError
from hamcrest import assert_that, is_, calling, raises

from veadotube.config import config
from veadotube.settings import ClientConfig, ConnectionConfig, load_client_config


class LoadClientConfigTest(unittest.TestCase):
    def setUp(self):
        self.home = tempfile.TemporaryDirectory()
        self.local = tempfile.TemporaryDirectory()
        patcher = patch.object(config, 'user_config_directory', self.home.name)
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self):
        self.home.cleanup()
        self.local.cleanup()

    def write_local(self, content):
        with open(os.path.join(self.local.name, 'veadotube.cfg'), 'w') as f:
            f.write(content)

    def test_defaults(self):
        assert_that(load_client_config(self.local.name), is_(ClientConfig()))

    def test_local_overrides(self):
        self.write_local("[client]\n"
                         "instances_dir = /tmp/instances\n"
                         "auto_connect = false\n"
                         "[connection]\n"
                         "max_reconnect_attempts = 2\n"
                         "reconnect_delay = 0.5\n")
        conf = load_client_config(self.local.name)
        assert_that(conf.instances_dir, is_('/tmp/instances'))
        assert_that(conf.auto_connect, is_(False))
        assert_that(conf.connection, is_(ConnectionConfig(2, 0.5, 10.0)))

    def test_invalid_value(self):
        self.write_local("[connection]\nreconnect_delay = soon\n")
        assert_that(calling(load_client_config).with_args(self.local.name), raises(ConfigObjError))


class ClientConfigTest(unittest.TestCase):
    def test_instances_path_expands_home(self):
        conf = ClientConfig(instances_dir='~/somewhere')
        assert_that(conf.instances_path, is_(os.path.join(os.path.expanduser('~'), 'somewhere')))

    def test_connection_defaults(self):
        assert_that(ClientConfig().connection, is_(ConnectionConfig(5, 1.0, 10.0)))
