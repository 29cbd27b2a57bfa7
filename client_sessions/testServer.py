#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: testServer.py

    Description:
        End-to-end tests for the demo application through Flask's test
        client: cookie writes on change only, tamper recovery, reset with
        preserved keys, duration changes, cookie attributes per lifetime
        model, secure-cookie enforcement, and the error packet format.
"""

import json
import os
import tempfile
import unittest

from client_sessions.server import create_app
from client_sessions.handlers.error_handler import ConfigurationError, ApplicationCodes
import client_sessions.handlers.codec_handler as CODEC


def session_cookie(response, name="session_state"):
    for header in response.headers.getlist("Set-Cookie"):
        if header.startswith(name + "="):
            return header
    return None


def cookie_value(header):
    return header.split(";", 1)[0].partition("=")[2]


class TestServer(unittest.TestCase):

    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.audit_path = os.path.join(self.tmp.name, "audit.log")

    def tearDown(self) -> None:
        self.tmp.cleanup()


    def make_client(self, **settings):
        overrides = {"CLIENT_SESSIONS_SECRET": "yo", "CLIENT_SESSIONS_AUDIT_LOG": self.audit_path}
        overrides.update({"CLIENT_SESSIONS_" + k: v for k, v in settings.items()})
        self.app = create_app(overrides)
        return self.app.test_client()


    def audit_events(self):
        if not os.path.exists(self.audit_path):
            return []
        with open(self.audit_path, encoding="utf-8") as f:
            return [json.loads(line)["event"] for line in f]


    def decode(self, header):
        return CODEC.decode(self.app.client_sessions.config, cookie_value(header))


    ####################################################################################################
    # Reads and writes
    ####################################################################################################

    def test_read_of_new_session_writes_nothing(self):

        client = self.make_client()
        response = client.get("/session")

        self.assertEqual(200, response.status_code)
        self.assertEqual({}, response.get_json())
        self.assertIsNone(session_cookie(response))


    def test_write_then_read(self):

        client = self.make_client()

        response = client.post("/session", json={"user": "bob", "roles": ["admin"]})
        header = session_cookie(response)

        self.assertIsNotNone(header)
        self.assertIn("HttpOnly", header)
        self.assertIn("Expires=", header)
        self.assertEqual({"user": "bob", "roles": ["admin"]}, self.decode(header).content)

        response = client.get("/session")
        self.assertEqual({"user": "bob", "roles": ["admin"]}, response.get_json())
        self.assertIsNone(session_cookie(response))


    def test_null_deletes_key(self):

        client = self.make_client()
        client.post("/session", json={"a": 1, "b": 2})

        response = client.post("/session", json={"a": None})
        self.assertEqual({"b": 2}, response.get_json())


    """
        A tampered cookie is ignored and replaced by a fresh one.
    """
    def test_tampered_cookie_is_replaced(self):

        client = self.make_client()
        client.set_cookie("session_state", "garbage")

        response = client.get("/session")

        self.assertEqual(200, response.status_code)
        self.assertEqual({}, response.get_json())

        header = session_cookie(response)
        self.assertIsNotNone(header)
        self.assertEqual({}, self.decode(header).content)
        self.assertIn("session_token_rejected", self.audit_events())


    def test_reset_with_preserve(self):

        client = self.make_client()
        client.post("/session", json={"a": 1, "b": 2, "c": 3})

        response = client.post("/session/reset", json={"preserve": ["b"]})

        self.assertEqual({"b": 2}, response.get_json())
        self.assertEqual({"b": 2}, self.decode(session_cookie(response)).content)


    def test_set_duration(self):

        client = self.make_client()
        client.post("/session", json={"a": 1})

        response = client.post("/session/duration", json={"duration": 60000})
        decoded = self.decode(session_cookie(response))

        self.assertEqual({"a": 1}, decoded.content)
        self.assertEqual(60000, decoded.duration)


    def test_set_duration_ephemeral(self):

        client = self.make_client()
        response = client.post("/session/duration", json={"duration": 60000, "ephemeral": True})

        header = session_cookie(response)
        self.assertIsNotNone(header)
        self.assertNotIn("Expires=", header)


    ####################################################################################################
    # Cookie attributes from configuration
    ####################################################################################################

    def test_ephemeral_config(self):

        client = self.make_client(COOKIE_EPHEMERAL="true")
        header = session_cookie(client.post("/session", json={"a": 1}))

        self.assertNotIn("Expires=", header)
        self.assertNotIn("Max-Age=", header)


    def test_max_age_config(self):

        client = self.make_client(COOKIE_MAX_AGE="60000", COOKIE_PATH="/", COOKIE_SAMESITE="Strict")
        header = session_cookie(client.post("/session", json={"a": 1}))

        self.assertIn("Max-Age=60", header)
        self.assertIn("SameSite=Strict", header)


    def test_custom_cookie_name(self):

        client = self.make_client(COOKIE_NAME="auth")
        response = client.post("/session", json={"a": 1})

        self.assertIsNone(session_cookie(response))
        self.assertEqual({"a": 1}, CODEC.decode(self.app.client_sessions.config, cookie_value(session_cookie(response, "auth"))).content)


    ####################################################################################################
    # Secure cookies
    ####################################################################################################

    def test_secure_cookie_over_http_fails(self):

        client = self.make_client(COOKIE_SECURE="true")
        response = client.get("/session")

        self.assertEqual(500, response.status_code)
        self.assertEqual(ApplicationCodes.INSECURE_TRANSPORT, response.get_json()["error_code"])
        self.assertIn("session_config_error", self.audit_events())


    def test_secure_cookie_over_https(self):

        client = self.make_client(COOKIE_SECURE="true")
        response = client.post("/session", json={"a": 1}, base_url="https://localhost")

        self.assertEqual(200, response.status_code)
        self.assertIn("Secure", session_cookie(response))


    def test_secure_cookie_behind_proxy(self):

        client = self.make_client(COOKIE_SECURE="true", PROXY_SECURE="1")
        response = client.post("/session", json={"a": 1})

        self.assertEqual(200, response.status_code)
        self.assertIn("Secure", session_cookie(response))


    ####################################################################################################
    # Errors
    ####################################################################################################

    def test_missing_secret_fails_at_startup(self):

        with self.assertRaises(ConfigurationError) as cm:
            create_app({"CLIENT_SESSIONS_SECRET": None, "CLIENT_SESSIONS_AUDIT_LOG": self.audit_path})

        self.assertEqual(ApplicationCodes.MISSING_SECRET, cm.exception.application_code)


    def test_duration_required(self):

        client = self.make_client()
        response = client.post("/session/duration", json={})

        self.assertEqual(400, response.status_code)
        self.assertEqual(ApplicationCodes.INVALID_DURATION, response.get_json()["error_code"])


    def test_invalid_duration_value(self):

        client = self.make_client()
        response = client.post("/session/duration", json={"duration": -5})

        self.assertEqual(500, response.status_code)
        self.assertEqual(ApplicationCodes.INVALID_DURATION, response.get_json()["error_code"])


    def test_non_object_body(self):

        client = self.make_client()
        response = client.post("/session", json=[1, 2, 3])

        self.assertEqual(400, response.status_code)
        self.assertEqual(ApplicationCodes.INVALID_CONTENT, response.get_json()["error_code"])


    def test_unknown_route_keeps_status(self):

        client = self.make_client()
        self.assertEqual(404, client.get("/nope").status_code)
        self.assertEqual(405, client.delete("/session").status_code)


if __name__ == "__main__":
    unittest.main()
