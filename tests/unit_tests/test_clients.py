"""
Unit tests for RancherRestClient.
"""

import unittest
from unittest.mock import MagicMock

import requests
from requests.auth import HTTPBasicAuth

from clients import RancherRestClient
from config import UpgraderConfig
from errors import TransportError

ENDPOINT = "https://rancher.example.com/v2-beta/projects/1a5"


def make_response(status_code=200, body=None, content=b"{}", text=""):
    resp = MagicMock()
    resp.status_code = status_code
    resp.content = content
    resp.text = text
    resp.json.return_value = body
    return resp


class TestRancherRestClient(unittest.TestCase):
    """Test RancherRestClient REST API interactions."""

    def setUp(self):
        """Set up test fixtures."""
        self.session = MagicMock()
        self.client = RancherRestClient(
            endpoint=ENDPOINT + "/",
            apikey="key",
            apisecret="secret",
            session=self.session,
        )

    def test_client_initialization(self):
        """Test client is properly initialised."""
        self.assertEqual(self.client.endpoint, ENDPOINT)
        self.assertEqual(self.client.timeout_s, 60)
        self.assertIsInstance(self.session.auth, HTTPBasicAuth)
        self.assertEqual(self.session.auth.username, "key")
        self.assertEqual(self.session.auth.password, "secret")

    def test_from_config(self):
        """Test building a client from configuration."""
        config = UpgraderConfig(
            endpoint=ENDPOINT, apikey="k", apisecret="s", request_timeout_s=15
        )

        client = RancherRestClient.from_config(config)

        self.assertEqual(client.endpoint, ENDPOINT)
        self.assertEqual(client.timeout_s, 15)
        self.assertIsInstance(client.session, requests.Session)

    def test_url_construction(self):
        """Test relative paths are joined onto the endpoint."""
        self.assertEqual(self.client._url("services"), f"{ENDPOINT}/services")
        self.assertEqual(self.client._url("/services"), f"{ENDPOINT}/services")

    def test_absolute_url_bypasses_endpoint(self):
        """Test action URLs from the API are used unchanged."""
        url = "http://other-host:8080/v2-beta/services/1s7/?action=upgrade"
        self.assertEqual(self.client._url(url), url)

    def test_get_sends_query_string(self):
        """Test GET parameters are passed as query parameters."""
        self.session.get.return_value = make_response(body={"data": []})

        result = self.client.get("services", {"name": "web"})

        self.assertEqual(result, {"data": []})
        self.session.get.assert_called_once_with(
            f"{ENDPOINT}/services", params={"name": "web"}, timeout=60
        )

    def test_post_sends_json_body(self):
        """Test POST parameters are sent as a JSON body."""
        self.session.post.return_value = make_response(body={"state": "upgrading"})
        url = f"{ENDPOINT}/services/1s7/?action=upgrade"

        result = self.client.post(url, {"inServiceStrategy": {"batchSize": 1}})

        self.assertEqual(result["state"], "upgrading")
        self.session.post.assert_called_once_with(
            url, json={"inServiceStrategy": {"batchSize": 1}}, timeout=60
        )

    def test_post_without_params_sends_empty_object(self):
        """Test POST with no parameters sends {}."""
        self.session.post.return_value = make_response(body={})

        self.client.post("services/1s7/?action=finishupgrade")

        self.assertEqual(self.session.post.call_args.kwargs["json"], {})

    def test_empty_body_returns_none(self):
        """Test an empty response body is returned as None."""
        self.session.post.return_value = make_response(status_code=204, content=b"")

        self.assertIsNone(self.client.post("services/1s7/?action=finishupgrade"))

    def test_http_error_raises_transport_error(self):
        """Test non-2xx statuses raise TransportError without retry."""
        self.session.get.return_value = make_response(
            status_code=503, text="Service Unavailable"
        )

        with self.assertRaises(TransportError) as ctx:
            self.client.get("services", {"name": "web"})

        self.assertEqual(ctx.exception.status_code, 503)
        self.assertEqual(ctx.exception.url, f"{ENDPOINT}/services")
        self.assertEqual(self.session.get.call_count, 1)

    def test_connection_error_raises_transport_error(self):
        """Test network failures raise TransportError."""
        self.session.get.side_effect = requests.ConnectionError("refused")

        with self.assertRaises(TransportError) as ctx:
            self.client.get("services")

        self.assertIsNone(ctx.exception.status_code)
        self.assertIn("refused", str(ctx.exception))

    def test_invalid_json_raises_transport_error(self):
        """Test an undecodable body raises TransportError."""
        resp = make_response(content=b"<html>")
        resp.json.side_effect = ValueError("no json")
        self.session.get.return_value = resp

        with self.assertRaises(TransportError):
            self.client.get("services")

    def test_unsupported_method(self):
        """Test only GET and POST are accepted."""
        with self.assertRaises(ValueError):
            self.client.request("services", "DELETE")


if __name__ == "__main__":
    unittest.main()
