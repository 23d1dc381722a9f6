#!/usr/bin/env python3
"""
Tests for token metadata lookup.
"""

import unittest
from unittest import mock

import requests

from blockfest.services.metadata import MetadataService, to_gateway_url


def response(body=None, status_error=None, bad_json=False):
    resp = mock.Mock()
    resp.raise_for_status.side_effect = status_error
    if bad_json:
        resp.json.side_effect = ValueError("not json")
    else:
        resp.json.return_value = body
    return resp


class TestGatewayURL(unittest.TestCase):

    def test_ipfs_uri(self):
        self.assertEqual(to_gateway_url("ipfs://bafy/1.json"), "https://ipfs.io/ipfs/bafy/1.json")

    def test_custom_gateway(self):
        self.assertEqual(to_gateway_url("ipfs://bafy", "https://gateway.pinata.cloud/ipfs"),
                         "https://gateway.pinata.cloud/ipfs/bafy")

    def test_https_passthrough(self):
        self.assertEqual(to_gateway_url("https://example.com/1.json"), "https://example.com/1.json")


class TestMetadataService(unittest.TestCase):

    def setUp(self):
        self.session = mock.Mock()
        self.service = MetadataService(session=self.session, timeout=3)

    def test_fetch_and_rewrite_image(self):
        self.session.get.return_value = response({"name": "BlockFest #1", "image": "ipfs://img/1.png"})
        metadata = self.service.fetch("ipfs://bafy/1.json")

        self.assertEqual(metadata["name"], "BlockFest #1")
        self.assertEqual(metadata["image"], "https://ipfs.io/ipfs/img/1.png")
        self.session.get.assert_called_with("https://ipfs.io/ipfs/bafy/1.json", timeout=3)

    def test_missing_uri(self):
        self.assertIsNone(self.service.fetch(None))
        self.session.get.assert_not_called()

    def test_http_error(self):
        self.session.get.return_value = response(status_error=requests.exceptions.HTTPError("404"))
        self.assertIsNone(self.service.fetch("ipfs://bafy/1.json"))

    def test_bad_json(self):
        self.session.get.return_value = response(bad_json=True)
        self.assertIsNone(self.service.fetch("ipfs://bafy/1.json"))

    def test_schema_violation(self):
        self.session.get.return_value = response({"description": "no name"})
        self.assertIsNone(self.service.fetch("ipfs://bafy/1.json"))

    def test_timeout(self):
        self.session.get.side_effect = requests.exceptions.Timeout()
        self.assertIsNone(self.service.fetch("ipfs://bafy/1.json"))


if __name__ == "__main__":
    unittest.main()
