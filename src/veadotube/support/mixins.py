import threading


def quote(val):
    return "'" + str(val) + "'" if val is not None else "None"


class StringerMixin:
    """
    Renders the object as its class name followed by its attributes in key sorted order.

    >>> class Point(StringerMixin):
    ...     def __init__(self):
    ...         self.y = 2
    ...         self.x = 'a'
    >>> str(Point())
    "Point{'x': 'a', 'y': '2'}"
    """

    def __str__(self):
        return type(self).__name__ + self._sorted_items_string()

    def __repr__(self):
        return str(self)

    def _sorted_items_string(self):
        return "{" + ", ".join(["'" + str(key) + "': " + quote(val)
                                for key, val in sorted(self.__dict__.items())]) + "}"


class CommonEqualityMixin(object):
    """  a deep equals comparison for value objects such as events and protocol messages. """
    local = threading.local()

    def __eq__(self, other):
        if not hasattr(CommonEqualityMixin.local, 'seen'):
            CommonEqualityMixin.local.seen = []
        seen = CommonEqualityMixin.local.seen
        return type(other) is type(self) and self._dicts_equal(other, seen)

    def _dicts_equal(self, other, seen):
        pair = (id(self), id(other))
        if pair in seen:
            raise ValueError("recursive comparison of %s" % type(self).__name__)
        seen.append(pair)
        try:
            return self.__dict__ == other.__dict__
        finally:
            seen.pop()

    def __ne__(self, other):
        return not self.__eq__(other)
