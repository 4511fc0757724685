import unittest

from hamcrest import assert_that, is_

from veadotube.protocol import requests


class RequestsTest(unittest.TestCase):
    def test_state_events_requests(self):
        assert_that(requests.state_list_request(), is_({"event": "list", "type": "stateEvents", "id": "mini"}))
        assert_that(requests.state_peek_request(), is_({"event": "peek", "type": "stateEvents", "id": "mini"}))

    def test_listener_requests(self):
        assert_that(requests.listen_request("tok"),
                    is_({"event": "listen", "type": "stateEvents", "id": "mini", "token": "tok"}))
        assert_that(requests.unlisten_request("tok"),
                    is_({"event": "unlisten", "type": "stateEvents", "id": "mini", "token": "tok"}))

    def test_set_state(self):
        assert_that(requests.set_state_request("happy"),
                    is_({"event": "payload", "type": "stateEvents", "id": "mini",
                         "payload": {"event": "set", "state": "happy"}}))

    def test_thumbnail_sizes_are_optional(self):
        assert_that(requests.thumbnail_request("a")["payload"], is_({"event": "thumb", "state": "a"}))
        assert_that(requests.thumbnail_request("a", 10, 20)["payload"],
                    is_({"event": "thumb", "state": "a", "width": 10, "height": 20}))
        assert_that(requests.thumbnail_request("a", height=0)["payload"],
                    is_({"event": "thumb", "state": "a", "height": 0}))

    def test_untyped_requests(self):
        assert_that(requests.instance_info_request(), is_({"event": "info"}))
        assert_that(requests.node_list_request(), is_({"event": "list"}))
