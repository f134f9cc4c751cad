import unittest
from unittest import mock

import requests

from src.timetable.client import UpstreamClient, basic_authorization, bearer_authorization
from src.timetable.errors import AuthFailure, UpstreamRejected, UpstreamUnavailable


def _response(status: int, body: object = None, text: str = "") -> mock.Mock:
    resp = mock.Mock()
    resp.status_code = status
    resp.text = text
    if isinstance(body, Exception):
        resp.json.side_effect = body
    else:
        resp.json.return_value = body
    return resp


class TestUpstreamClient(unittest.TestCase):
    def setUp(self) -> None:
        self.session = mock.Mock(spec=requests.Session)
        self.client = UpstreamClient("https://app.example.edu/", timeout=12.5, session=self.session)

    def test_success(self) -> None:
        self.session.get.return_value = _response(200, {"data": []})

        data = self.client.get_json("/gateway/x", authorization="Bearer t", params={"a": "1"})

        self.assertEqual(data, {"data": []})
        self.session.get.assert_called_once_with(
            "https://app.example.edu/gateway/x",
            headers={"Authorization": "Bearer t"},
            params={"a": "1"},
            timeout=12.5,
        )

    def test_401_is_auth_failure(self) -> None:
        self.session.get.return_value = _response(401, text="bad client credentials")

        with self.assertRaises(AuthFailure) as ctx:
            self.client.get_json("/gateway/auth/oauth/token", authorization="Basic x")

        self.assertEqual(ctx.exception.status, 401)
        self.assertEqual(ctx.exception.body, "bad client credentials")

    def test_5xx_is_unavailable(self) -> None:
        self.session.get.return_value = _response(503, text="maintenance")

        with self.assertRaises(UpstreamUnavailable) as ctx:
            self.client.get_json("/gateway/x", authorization="Bearer t")

        self.assertEqual(ctx.exception.status, 503)

    def test_network_error_is_unavailable(self) -> None:
        self.session.get.side_effect = requests.ConnectionError("reset")

        with self.assertRaises(UpstreamUnavailable):
            self.client.get_json("/gateway/x", authorization="Bearer t")

    def test_other_4xx_is_rejected(self) -> None:
        self.session.get.return_value = _response(403, text="forbidden")

        with self.assertRaises(UpstreamRejected) as ctx:
            self.client.get_json("/gateway/x", authorization="Bearer t")

        self.assertEqual(ctx.exception.status, 403)

    def test_non_json_is_rejected(self) -> None:
        self.session.get.return_value = _response(200, ValueError("no json"), text="<html>")

        with self.assertRaises(UpstreamRejected):
            self.client.get_json("/gateway/x", authorization="Bearer t")

    def test_json_list_is_rejected(self) -> None:
        self.session.get.return_value = _response(200, [1, 2])

        with self.assertRaises(UpstreamRejected):
            self.client.get_json("/gateway/x", authorization="Bearer t")

    def test_error_body_is_trimmed(self) -> None:
        self.session.get.return_value = _response(502, text="x" * 2000)

        with self.assertRaises(UpstreamUnavailable) as ctx:
            self.client.get_json("/gateway/x", authorization="Bearer t")

        self.assertEqual(len(ctx.exception.body), 500)


class TestAuthorizationHeaders(unittest.TestCase):
    def test_prefixes_added_once(self) -> None:
        self.assertEqual(bearer_authorization("t"), "Bearer t")
        self.assertEqual(bearer_authorization("Bearer t"), "Bearer t")
        self.assertEqual(basic_authorization("abc"), "Basic abc")
        self.assertEqual(basic_authorization("Basic abc"), "Basic abc")


if __name__ == "__main__":
    unittest.main()
