"""
A passive cache of the state data reported by each instance.

The cache listens to the events of a MessageRouter and keeps, per instance id, the last state list, the current
state and the thumbnails received, keyed by state id. Entries are replaced on update and never expire; they are
removed with clear_instance() when the instance goes away.
"""
import logging

from veadotube.protocol import router
from veadotube.protocol.requests import STATE_EVENTS
from veadotube.support.events import EventSource
from veadotube.support.mixins import CommonEqualityMixin, StringerMixin

logger = logging.getLogger(__name__)


class CacheEvent(CommonEqualityMixin, StringerMixin):
    """ base class for cache events. """


class InstanceCacheEvent(CacheEvent):
    def __init__(self, instance_id):
        self.instance_id = instance_id


class StatesCachedEvent(InstanceCacheEvent):
    """ The state list of an instance was replaced. """
    def __init__(self, instance_id, states):
        super().__init__(instance_id)
        self.states = states


class StateDiscoveredEvent(InstanceCacheEvent):
    """ Fired for each state in a cached state list. """
    def __init__(self, instance_id, state):
        super().__init__(instance_id)
        self.state = state


class CurrentStateChangedEvent(InstanceCacheEvent):
    """ The avatar switched state. previous_state is None when no state was known before. """
    def __init__(self, instance_id, previous_state, new_state):
        super().__init__(instance_id)
        self.previous_state = previous_state
        self.new_state = new_state


class CurrentStatePeekedEvent(InstanceCacheEvent):
    def __init__(self, instance_id, state):
        super().__init__(instance_id)
        self.state = state


class ThumbnailCachedEvent(InstanceCacheEvent):
    """ :param data: the decoded image """
    def __init__(self, instance_id, thumbnail, data):
        super().__init__(instance_id)
        self.thumbnail = thumbnail
        self.data = data


class NodeDiscoveredEvent(InstanceCacheEvent):
    """ Fired for each entry of a node list. state_events_node is set for the node that reports avatar states. """
    def __init__(self, instance_id, entry, state_events_node):
        super().__init__(instance_id)
        self.entry = entry
        self.state_events_node = state_events_node


class InstanceCacheClearedEvent(InstanceCacheEvent):
    pass


class CacheClearedEvent(CacheEvent):
    pass


class CacheStats(CommonEqualityMixin, StringerMixin):
    """ the number of instances with a state list, with a current state, and the number of thumbnails """
    def __init__(self, states_cached, current_states_cached, thumbnails_cached):
        self.states_cached = states_cached
        self.current_states_cached = current_states_cached
        self.thumbnails_cached = thumbnails_cached


class StateCache:
    """
    Caches state lists, current states and thumbnails from router events. Add handle_event() as a listener to
    the router's events; events the cache has no use for are ignored.
    """

    def __init__(self):
        self.events = EventSource()
        self._states = dict()          # instance id -> list of State
        self._current_states = dict()  # instance id -> state id
        self._thumbnails = dict()      # (instance id, state id) -> bytes
        self._handlers = {
            router.StateListEvent: self._state_list,
            router.StatePeekedEvent: self._state_peeked,
            router.StateChangedEvent: self._state_changed,
            router.ThumbnailEvent: self._thumbnail,
            router.NodeListEvent: self._node_list,
        }

    def handle_event(self, event):
        handler = self._handlers.get(type(event))
        if handler is not None:
            handler(event)

    def _state_list(self, event):
        states = list(event.states)
        self._states[event.instance_id] = states
        self.events.fire(StatesCachedEvent(event.instance_id, states))
        self.events.fire_all([StateDiscoveredEvent(event.instance_id, state) for state in states])

    def _state_peeked(self, event):
        self._current_states[event.instance_id] = event.state
        self.events.fire(CurrentStatePeekedEvent(event.instance_id, event.state))

    def _state_changed(self, event):
        previous = self._current_states.get(event.instance_id)
        self._current_states[event.instance_id] = event.state
        self.events.fire(CurrentStateChangedEvent(event.instance_id, previous, event.state))

    def _thumbnail(self, event):
        thumbnail = event.thumbnail
        try:
            data = thumbnail.data
        except (ValueError, TypeError) as e:
            logger.warning("discarding thumbnail for state %s of instance %s: %s" %
                           (thumbnail.state, event.instance_id, e))
            return
        self._thumbnails[(event.instance_id, thumbnail.state)] = data
        self.events.fire(ThumbnailCachedEvent(event.instance_id, thumbnail, data))

    def _node_list(self, event):
        self.events.fire_all([NodeDiscoveredEvent(event.instance_id, entry, entry.type == STATE_EVENTS)
                              for entry in event.entries])

    def states(self, instance_id):
        """ the last state list received from the instance, or None """
        return self._states.get(instance_id)

    def current_state(self, instance_id):
        return self._current_states.get(instance_id)

    def thumbnail(self, instance_id, state_id):
        """ the decoded thumbnail image of a state, or None """
        return self._thumbnails.get((instance_id, state_id))

    def clear_instance(self, instance_id):
        """ forgets everything cached for the instance, including its thumbnails """
        self._states.pop(instance_id, None)
        self._current_states.pop(instance_id, None)
        for key in [k for k in self._thumbnails if k[0] == instance_id]:
            del self._thumbnails[key]
        self.events.fire(InstanceCacheClearedEvent(instance_id))

    def clear(self):
        self._states.clear()
        self._current_states.clear()
        self._thumbnails.clear()
        self.events.fire(CacheClearedEvent())

    def stats(self) -> CacheStats:
        return CacheStats(len(self._states), len(self._current_states), len(self._thumbnails))
