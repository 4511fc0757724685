"""
Value objects describing veadotube instances and the data they report.
"""
import base64

from veadotube.support.mixins import CommonEqualityMixin, StringerMixin


class Instance(CommonEqualityMixin, StringerMixin):
    """
    A running veadotube instance, as described by its file in the instances directory.

    :param id: derived from the instance file name, unique among discovered instances.
    :param server: the host:port of the instance's websocket server.
    """
    def __init__(self, id, server, name, version):
        self.id = id
        self.server = server
        self.name = name
        self.version = version


class State(CommonEqualityMixin, StringerMixin):
    """ An avatar state. thumb_hash is only reported by version 2.1 and later. """
    def __init__(self, id, name, thumb_hash=None):
        self.id = id
        self.name = name
        self.thumb_hash = thumb_hash

    @classmethod
    def from_dict(cls, value: dict):
        return cls(value.get('id'), value.get('name'), value.get('thumb_hash'))


class Entry(CommonEqualityMixin, StringerMixin):
    """ A node reported by an instance. From version 2.1, name is the same as id. """
    def __init__(self, type, id, name):
        self.type = type
        self.id = id
        self.name = name

    @classmethod
    def from_dict(cls, value: dict):
        return cls(value.get('type'), value.get('id'), value.get('name'))


class Thumbnail(CommonEqualityMixin, StringerMixin):
    """
    A state thumbnail. png holds the base64 text sent by the instance.

    >>> Thumbnail('happy', 1, 1, 'iVBORw0=').data
    b'\\x89PNG\\r'
    """
    def __init__(self, state, width, height, png, hash=None):
        self.state = state
        self.width = width
        self.height = height
        self.png = png
        self.hash = hash

    @property
    def data(self) -> bytes:
        """ the decoded image. raises binascii.Error when png is not valid base64 """
        return base64.b64decode(self.png, validate=True)

    @classmethod
    def from_dict(cls, value: dict):
        return cls(value.get('state'), value.get('width'), value.get('height'), value.get('png'), value.get('hash'))
