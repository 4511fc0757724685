"""

veadotube instance connections

- SafeParser: reads text that is JSON, nearly JSON, or a plain scalar, without raising. Shared by discovery and
  message decoding.
- instance discovery - every running veadotube instance keeps a file in ~/.veadotube/instances. InstanceDiscovery
  watches the directory with watchdog and posts ResourceAvailableEvent, ResourceUpdatedEvent and
  ResourceUnavailableEvent as instances start, change and exit.
- VeadotubeConnection - the websocket session with one instance. Sends the handshake (state list, peek, listen)
  on open, decodes inbound frames, and reconnects with a linear backoff when the session is lost.
- ConnectionManager - one connection per instance id. A new connection for an instance closes the previous one.
- MessageDecoder - splits the optional "channel:" prefix from a frame and classifies the body into a
  ResultMessage variant.
- MessageRouter - turns messages into events: state list, state changed, state peeked, thumbnail, node list,
  and unrecognized messages.
- StateCache - the latest state list, current state and thumbnails per instance.
- VeadotubeClient - wires all of the above together.


## Threading

All work happens on one asyncio event loop. The watchdog observer thread only hands file names over to the loop
with call_soon_threadsafe; discovery, connections, routing and caching all run on the loop, so events are
delivered in the order they happen and the instance and connection maps need no locking.

Event handlers are called synchronously and should not block.
"""
