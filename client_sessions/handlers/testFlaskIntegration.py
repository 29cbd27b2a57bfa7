#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: testFlaskIntegration.py

    Description:
        Test suite for the ClientSessions Flask extension on a bare app:
        attaching sessions per request, idempotent attachment, several
        sessions under different request keys, replace_session, and the
        accessor outside of a hooked request.
"""

import os
import tempfile
import unittest

from flask import Flask, jsonify, request

from client_sessions.handlers.config_handler import build_session_config
from client_sessions.handlers.error_handler import ConfigurationError, SessionMisuseError, ApplicationCodes
from client_sessions.handlers.flask_integration import ClientSessions, FlaskCookieTransport, get_session, replace_session
from client_sessions.utilities.audit_log import AuditLog
import client_sessions.handlers.codec_handler as CODEC


"""
    Map cookie name to value for every Set-Cookie header of a response.
"""
def set_cookies(response):
    cookies = {}
    for header in response.headers.getlist("Set-Cookie"):
        name, _, rest = header.partition("=")
        cookies[name] = rest.split(";", 1)[0]
    return cookies


class TestFlaskIntegration(unittest.TestCase):

    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.audit_log = AuditLog(os.path.join(self.tmp.name, "audit.log"))

        self.first = build_session_config(secret="yo", cookie_name="first")
        self.second = build_session_config(secret="other", cookie_name="second", request_key="prefs")

        self.app = Flask(__name__)
        self.app.testing = True
        self.ext_first = ClientSessions(self.app, config=self.first, audit_log=self.audit_log)
        self.ext_second = ClientSessions(self.app, config=self.second, audit_log=self.audit_log)

        @self.app.route("/write")
        def write():
            get_session("first")["user"] = "bob"
            get_session("prefs")["theme"] = "dark"
            return jsonify(ok=True)

        @self.app.route("/read")
        def read():
            return jsonify(first=dict(get_session("first")), prefs=dict(get_session("prefs")))

        @self.app.route("/replace")
        def replace():
            replace_session({"replaced": True}, "first")
            return jsonify(ok=True)

        @self.app.route("/replace-bad")
        def replace_bad():
            replace_session("not a mapping", "first")
            return jsonify(ok=True)

        self.client = self.app.test_client()

    def tearDown(self) -> None:
        self.tmp.cleanup()


    def test_registered_under_request_keys(self):

        self.assertIs(self.ext_first, self.app.extensions["client_sessions"]["first"])
        self.assertIs(self.ext_second, self.app.extensions["client_sessions"]["prefs"])


    """
        Each session writes its own cookie under its own name and keys.
    """
    def test_two_sessions_in_one_request(self):

        cookies = set_cookies(self.client.get("/write"))

        self.assertEqual({"user": "bob"}, CODEC.decode(self.first, cookies["first"]).content)
        self.assertEqual({"theme": "dark"}, CODEC.decode(self.second, cookies["second"]).content)

        # Tokens are not interchangeable between the two sessions
        self.assertIsNone(CODEC.decode(self.second, cookies["first"]))


    def test_cookies_round_trip_through_client(self):

        self.client.get("/write")
        response = self.client.get("/read")

        self.assertEqual({"first": {"user": "bob"}, "prefs": {"theme": "dark"}}, response.get_json())
        self.assertEqual({}, set_cookies(response))


    def test_replace_session(self):

        cookies = set_cookies(self.client.get("/replace"))

        self.assertEqual({"replaced": True}, CODEC.decode(self.first, cookies["first"]).content)
        self.assertNotIn("second", cookies)


    def test_replace_session_rejects_non_mapping(self):

        with self.assertRaises(TypeError):
            self.client.get("/replace-bad")


    """
        Opening twice in one request keeps the first session.
    """
    def test_open_is_idempotent(self):

        with self.app.test_request_context("/"):
            self.ext_first._open_session()
            session = get_session("first").session

            self.ext_first._open_session()
            self.assertIs(session, get_session("first").session)


    def test_accessor_without_attached_session(self):

        with self.app.test_request_context("/"):
            with self.assertRaises(SessionMisuseError) as cm:
                get_session("first")

            self.assertEqual(ApplicationCodes.SESSION_NOT_ATTACHED, cm.exception.application_code)


    """
        With several sessions attached, the accessor needs a name.
    """
    def test_accessor_requires_key_with_several_sessions(self):

        with self.app.test_request_context("/"):
            self.ext_first._open_session()
            self.ext_second._open_session()

            with self.assertRaises(SessionMisuseError):
                get_session()


    def test_bad_app_config_fails_at_init(self):

        app = Flask(__name__)
        app.config["CLIENT_SESSIONS_COOKIE_NAME"] = "a=b"
        app.config["CLIENT_SESSIONS_SECRET"] = "yo"

        with self.assertRaises(ConfigurationError) as cm:
            ClientSessions(app, audit_log=self.audit_log)

        self.assertEqual(ApplicationCodes.INVALID_COOKIE_NAME, cm.exception.application_code)


    def test_config_from_app_config(self):

        app = Flask(__name__)
        app.config.update(CLIENT_SESSIONS_SECRET="yo", CLIENT_SESSIONS_COOKIE_NAME="auth", CLIENT_SESSIONS_PROXY_SECURE="true")
        ext = ClientSessions()
        ext.init_app(app)

        self.assertEqual("auth", ext.config.cookie_name)
        self.assertTrue(ext.proxy_secure)
        self.assertIs(ext, app.extensions["client_sessions"]["auth"])



class TestFlaskCookieTransport(unittest.TestCase):

    def test_reads_and_queues_cookies(self):

        app = Flask(__name__)

        with app.test_request_context("/", headers={"Cookie": "name=value"}):
            transport = FlaskCookieTransport(request)
            self.assertEqual("value", transport.get("name"))
            self.assertIsNone(transport.get("missing"))
            self.assertFalse(transport.is_secure())

            transport.set("name", "token", {"expires": None, "httponly": True, "secure": False, "max_age": 60, "samesite": "Lax"})
            response = transport.apply(app.response_class("ok"))

        header = response.headers["Set-Cookie"]
        self.assertTrue(header.startswith("name=token"))
        self.assertIn("Max-Age=60", header)
        self.assertIn("HttpOnly", header)
        self.assertIn("SameSite=Lax", header)
        self.assertIn("Path=/", header)

        # Applied cookies are not written twice
        self.assertEqual([], transport.apply(app.response_class("ok")).headers.getlist("Set-Cookie"))


if __name__ == "__main__":
    unittest.main()
