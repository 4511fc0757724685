"""
The requests a client sends to a veadotube instance. Each is a JSON object sent as one text frame.

>>> state_list_request()
{'event': 'list', 'type': 'stateEvents', 'id': 'mini'}
>>> thumbnail_request('happy', width=64)
{'event': 'payload', 'type': 'stateEvents', 'id': 'mini', 'payload': {'event': 'thumb', 'state': 'happy', 'width': 64}}
"""

STATE_EVENTS = 'stateEvents'
NODE_ID = 'mini'


def _state_events(event, **fields):
    request = {'event': event, 'type': STATE_EVENTS, 'id': NODE_ID}
    request.update(fields)
    return request


def state_list_request():
    return _state_events('list')


def state_peek_request():
    return _state_events('peek')


def listen_request(token):
    return _state_events('listen', token=token)


def unlisten_request(token):
    return _state_events('unlisten', token=token)


def set_state_request(state_id):
    return _state_events('payload', payload={'event': 'set', 'state': state_id})


def thumbnail_request(state_id, width=None, height=None):
    payload = {'event': 'thumb', 'state': state_id}
    if width is not None:
        payload['width'] = width
    if height is not None:
        payload['height'] = height
    return _state_events('payload', payload=payload)


def instance_info_request():
    return {'event': 'info'}


def node_list_request():
    return {'event': 'list'}
