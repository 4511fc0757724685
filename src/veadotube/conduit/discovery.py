"""
    Discovery of running veadotube instances.

    Every running instance keeps a file in the instances directory. The file name identifies the instance and the
    content, a small JSON document, gives its websocket server address. The file appears when the instance starts,
    is rewritten when the instance changes, and is deleted when it exits.

    InstanceDiscovery watches the directory and posts ResourceAvailableEvent, ResourceUpdatedEvent and
    ResourceUnavailableEvent as instances come and go. The key of each event is the instance id and the resource
    is the Instance.
"""
import asyncio
import logging
import os

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from veadotube.model import Instance
from veadotube.support.events import EventSource
from veadotube.support.mixins import CommonEqualityMixin, StringerMixin

logger = logging.getLogger(__name__)


class DiscoveryDirectoryNotFoundError(FileNotFoundError):
    """ The instances directory does not exist, so discovery cannot start. """


class InstanceDescriptorError(ValueError):
    """ An instance file could not be read as an instance descriptor. Expected while the file is being written. """


class ResourceEvent(CommonEqualityMixin, StringerMixin):
    """ Notification about a resource. """
    def __init__(self, source, key, resource):
        """
        :param source   The ResourceDiscovery that posted this event
        :param key An identifier for the resource.
        :param resource The resource itself, which may have instance-specific details beyond what is available in
            key.
        """
        self.source = source
        self.key = key
        self.resource = resource


class ResourceAvailableEvent(ResourceEvent):
    """ Signifies that a resource is available. """


class ResourceUpdatedEvent(ResourceEvent):
    """ Signifies that an available resource has changed. The resource is the new description. """


class ResourceUnavailableEvent(ResourceEvent):
    """ Signifies that a resource has become unavailable. """


class ResourceDiscovery:
    """ Monitors resources for availability
        and posts notification when a resource becomes available, changes, or goes away. """
    def __init__(self):
        self.listeners = EventSource()


class InstanceDirectoryHandler(FileSystemEventHandler):
    """
    Receives notifications from the watchdog observer thread and hands the affected file names to the event loop.
    Nothing else is done on the observer thread.

    Only content changes are handled. Open and close notifications are ignored, since reading an instance file
    produces them.
    """
    def __init__(self, loop, process_file):
        super().__init__()
        self.loop = loop
        self.process_file = process_file

    def on_created(self, event):
        self._file_event(event.is_directory, event.src_path)

    def on_modified(self, event):
        self._file_event(event.is_directory, event.src_path)

    def on_deleted(self, event):
        self._file_event(event.is_directory, event.src_path)

    def on_moved(self, event):
        self._file_event(event.is_directory, event.src_path, event.dest_path)

    def _file_event(self, is_directory, *paths):
        if is_directory:
            return
        for path in paths:
            if path:
                self._schedule(path)

    def _schedule(self, path):
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        self.loop.call_soon_threadsafe(self.process_file, os.path.basename(path))


class InstanceDiscovery(ResourceDiscovery):
    """
    Maintains the registry of running instances by watching the instances directory.

    File names and contents are read with the SafeParser, which tolerates odd names and half-written content.

    :param directory: the instances directory
    :param parser: the SafeParser used for file names and contents
    :param default_name: the instance name used when the file does not give one
    :param default_version: the instance version used when the file does not give one
    :param observer_factory: creates the watchdog observer
    """

    def __init__(self, directory, parser, default_name='veadotube', default_version='2.1',
                 observer_factory=Observer):
        super().__init__()
        self.directory = directory
        self.parser = parser
        self.default_name = default_name
        self.default_version = default_version
        self._observer_factory = observer_factory
        self._observer = None
        self._stopping = []
        self._instances = {}

    @property
    def instances(self):
        """ a copy of the mapping from instance id to Instance """
        return dict(self._instances)

    def get(self, instance_id):
        return self._instances.get(instance_id)

    @property
    def watching(self):
        return self._observer is not None

    def start(self, loop=None):
        """
        Starts watching the directory, and then processes the files already present so that instances started
        before the watch are discovered.

        Must be called from the thread running the event loop, or with the loop given.
        raises DiscoveryDirectoryNotFoundError if the directory does not exist.
        """
        if not os.path.isdir(self.directory):
            raise DiscoveryDirectoryNotFoundError("instances directory not found: %s" % self.directory)
        if self._observer is not None:
            return
        loop = loop or asyncio.get_running_loop()
        observer = self._observer_factory()
        observer.schedule(InstanceDirectoryHandler(loop, self.process_file), self.directory, recursive=False)
        observer.start()
        self._observer = observer
        logger.info("watching for instances in %s" % self.directory)
        for filename in sorted(os.listdir(self.directory)):
            self.process_file(filename)

    def stop(self):
        """
        Stops watching and forgets the registered instances, so a later start() discovers them afresh.
        No unavailable events are posted. The observer thread is asked to stop but not joined; await
        wait_stopped() for that.
        """
        observer = self._observer
        self._observer = None
        self._instances.clear()
        if observer is not None:
            observer.stop()
            self._stopping.append(observer)
            logger.info("stopped watching %s" % self.directory)

    async def wait_stopped(self):
        """ joins the stopped observer threads without blocking the event loop """
        loop = asyncio.get_running_loop()
        while self._stopping:
            observer = self._stopping.pop(0)
            await loop.run_in_executor(None, observer.join)

    def instance_id(self, filename):
        """
        The id for an instance file. The parsed file name is used when it is text, otherwise the name itself.

        >>> from veadotube.safeparse import SafeParser
        >>> InstanceDiscovery('.', SafeParser()).instance_id(' abc ')
        'abc'
        >>> InstanceDiscovery('.', SafeParser()).instance_id('123')
        '123'
        """
        value = self.parser.parse(filename)
        return value if isinstance(value, str) and value else filename

    def process_file(self, filename):
        """
        Brings the registry up to date with one file in the instances directory.
        Called for each file change notification, and for each file when discovery starts.
        """
        path = os.path.join(self.directory, filename)
        instance_id = self.instance_id(filename)
        try:
            if os.path.isfile(path):
                self._file_present(instance_id, path)
            else:
                self._file_absent(instance_id)
        except (InstanceDescriptorError, OSError) as e:
            logger.debug("ignoring instance file %s: %s" % (filename, e))
        except Exception as e:
            logger.exception("error processing instance file %s: %s" % (filename, e))

    def _file_present(self, instance_id, path):
        with open(path, encoding='utf-8') as f:
            content = f.read()
        if not content.strip():
            return      # still being written
        descriptor = self._read_descriptor(content)

        existing = self._instances.get(instance_id)
        if existing is not None and existing.server == descriptor['server']:
            return

        instance = Instance(instance_id, descriptor['server'],
                            descriptor.get('name') or self.default_name,
                            descriptor.get('version') or self.default_version)
        self._instances[instance_id] = instance
        event = ResourceAvailableEvent if existing is None else ResourceUpdatedEvent
        logger.info("instance %s: id=%s, server=%s" % ('available' if existing is None else 'updated',
                                                       instance_id, instance.server))
        self.listeners.fire(event(self, instance_id, instance))

    def _read_descriptor(self, content) -> dict:
        descriptor = self.parser.parse(content)
        if not isinstance(descriptor, dict) or not descriptor.get('server'):
            raise InstanceDescriptorError("not an instance descriptor: %.40r" % content)
        if not isinstance(descriptor['server'], str):
            raise InstanceDescriptorError("server is not text: %r" % descriptor['server'])
        return descriptor

    def _file_absent(self, instance_id):
        instance = self._instances.pop(instance_id, None)
        if instance is not None:
            logger.info("instance unavailable: id=%s" % instance_id)
            self.listeners.fire(ResourceUnavailableEvent(self, instance_id, instance))
