"""
The settings of a VeadotubeClient, with defaults matching the bundled veadotube.default.cfg.
"""
import os

from veadotube.config.config import load_config, apply_conf_path, package_config_directory
from veadotube.support.mixins import CommonEqualityMixin, StringerMixin

config_name = 'veadotube'


class ConnectionConfig(CommonEqualityMixin, StringerMixin):
    """
    :param max_reconnect_attempts: reconnection attempts after a session is lost, before giving up
    :param reconnect_delay: seconds; attempt n waits reconnect_delay * n
    :param connection_timeout: seconds to wait for the websocket to open
    """
    def __init__(self, max_reconnect_attempts=5, reconnect_delay=1.0, connection_timeout=10.0):
        self.max_reconnect_attempts = max_reconnect_attempts
        self.reconnect_delay = reconnect_delay
        self.connection_timeout = connection_timeout


class ClientConfig(CommonEqualityMixin, StringerMixin):
    def __init__(self, instances_dir='~/.veadotube/instances', listener_token='TpVtPlugin.ChangeState',
                 auto_connect=True, connection_name_prefix='veadotube-py-', default_instance_name='veadotube',
                 default_instance_version='2.1', connection=None):
        self.instances_dir = instances_dir
        self.listener_token = listener_token
        self.auto_connect = auto_connect
        self.connection_name_prefix = connection_name_prefix
        self.default_instance_name = default_instance_name
        self.default_instance_version = default_instance_version
        self.connection = connection or ConnectionConfig()

    @property
    def instances_path(self):
        """ the instances directory with ~ expanded """
        return os.path.expanduser(self.instances_dir)


def load_client_config(directory=None):
    """
    Builds the client settings from the configuration files.
    :param directory: the directory holding a local veadotube.cfg override, the current directory when not given
    raises ConfigObjError when a configured value is invalid
    """
    conf = load_config(config_name, package_config_directory, directory)
    config = ClientConfig()
    apply_conf_path(conf, ['client'], config)
    apply_conf_path(conf, ['connection'], config.connection)
    return config
