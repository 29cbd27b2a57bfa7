#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: testSessionHandler.py

    Description:
        Test suite for ClientSession and SessionProxy. Drives the lazy-load
        and sliding-expiration state machine with a fake transport and a fake
        clock: expiry, renewal, duration changes in either order relative to
        content writes, ephemeral and maxAge lifetimes, secure-transport
        enforcement, dirty tracking, and reset semantics.
"""

import unittest
from datetime import datetime, timezone

from client_sessions.handlers.config_handler import build_session_config
from client_sessions.handlers.cookie_handler import millis_to_datetime
from client_sessions.handlers.error_handler import ConfigurationError, SessionMisuseError, ApplicationCodes
from client_sessions.handlers.session_handler import ClientSession, SessionProxy
import client_sessions.handlers.codec_handler as CODEC


T0 = 1700000000000


class FakeTransport:

    def __init__(self, cookies=None, secure=False, proxy_secure=False):
        self.cookies = dict(cookies or {})
        self.secure = secure
        self.proxy_secure = proxy_secure
        self.written = []

    def get(self, name):
        return self.cookies.get(name)

    def set(self, name, value, attributes):
        self.written.append((name, value, attributes))

    def is_secure(self):
        return self.secure


class FakeClock:

    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now


class RecordingAudit:

    def __init__(self):
        self.events = []

    def event(self, **kv):
        self.events.append(kv)

    def names(self):
        return [e["event"] for e in self.events]


class TestClientSession(unittest.TestCase):

    def setUp(self) -> None:
        self.clock = FakeClock()
        self.audit = RecordingAudit()
        self.config = self.make_config()


    def make_config(self, **overrides):
        options = {"secret": "yo", "cookie_name": "session"}
        options.update(overrides)
        return build_session_config(**options)


    def token(self, content, created_at=T0, duration=None, config=None):
        config = config or self.config
        return CODEC.encode(config, content, config.duration if duration is None else duration, created_at)


    def open(self, cookie=None, config=None, **transport_args):
        config = config or self.config
        cookies = {} if cookie is None else {config.cookie_name: cookie}
        transport = FakeTransport(cookies, **transport_args)
        session = ClientSession(transport, config, audit_log=self.audit, clock=self.clock)
        return session, transport


    """
        Finalize a session and decode the cookie it wrote (None if nothing was written).
    """
    def finish(self, session, transport, config=None):
        session.finalize()
        if not transport.written:
            return None
        name, value, _attributes = transport.written[-1]
        self.assertEqual((config or self.config).cookie_name, name)
        return CODEC.decode(config or self.config, value)


    ####################################################################################################
    # Construction
    ####################################################################################################

    """
        Nothing is read from the transport until content is touched.
    """
    def test_construction_is_lazy(self):

        session, _ = self.open(cookie="garbage")

        self.assertFalse(session.loaded)
        self.assertFalse(session.dirty)
        self.assertEqual(self.config.duration, session.duration)
        self.assertEqual(self.config.active_duration, session.active_duration)
        self.assertEqual([], self.audit.events)


    def test_rejects_non_config(self):

        with self.assertRaises(ConfigurationError) as cm:
            ClientSession(FakeTransport(), {"secret": "yo"})

        self.assertEqual(ApplicationCodes.MISSING_OPTIONS, cm.exception.application_code)


    def test_ephemeral_and_max_age_conflict(self):

        config = self.make_config(cookie={"ephemeral": True, "max_age": 60000})

        with self.assertRaises(ConfigurationError) as cm:
            self.open(config=config)

        self.assertEqual(ApplicationCodes.EPHEMERAL_WITH_MAX_AGE, cm.exception.application_code)


    """
        A secure cookie needs a secure transport or an explicit proxy override.
    """
    def test_secure_cookie_transport_check(self):

        config = self.make_config(cookie={"secure": True})

        with self.assertRaises(ConfigurationError) as cm:
            self.open(config=config)
        self.assertEqual(ApplicationCodes.INSECURE_TRANSPORT, cm.exception.application_code)

        self.open(config=config, secure=True)
        self.open(config=config, proxy_secure=True)


    ####################################################################################################
    # Loading
    ####################################################################################################

    def test_valid_cookie_is_loaded(self):

        session, transport = self.open(self.token({"user": "bob"}))

        self.assertEqual({"user": "bob"}, session.content)
        self.assertTrue(session.loaded)
        self.assertEqual(T0, session.created_at)

        # Reading does not rewrite the cookie
        self.assertIsNone(self.finish(session, transport))


    """
        Reading a session that never existed writes nothing and does not count as loaded.
    """
    def test_read_of_missing_session(self):

        session, transport = self.open()

        self.assertEqual({}, session.content)
        self.assertFalse(session.loaded)
        self.assertFalse(session.is_dirty())
        self.assertIsNone(self.finish(session, transport))
        self.assertNotIn("session_reset", self.audit.names())


    def test_write_to_missing_session(self):

        session, transport = self.open()
        session.content["a"] = 1

        decoded = self.finish(session, transport)

        self.assertEqual({"a": 1}, decoded.content)
        self.assertEqual(T0, decoded.created_at)
        self.assertEqual(self.config.duration, decoded.duration)


    """
        A corrupt or forged token is treated as no session: empty content, reset, new cookie.
    """
    def test_invalid_token_resets(self):

        for bad in ("garbage", self.token({"a": 1})[:-2] + "xx", self.token({"a": 1}, config=self.make_config(secret="other"))):
            with self.subTest(token=bad):
                self.audit.events.clear()
                session, transport = self.open(bad)

                self.assertEqual({}, session.content)
                self.assertEqual("session_token_rejected", self.audit.names()[0])
                self.assertIn("session_reset", self.audit.names())

                decoded = self.finish(session, transport)
                self.assertEqual({}, decoded.content)
                self.assertEqual(T0, decoded.created_at)


    def test_rejection_reason_is_audited(self):

        session, _ = self.open("garbage")
        session.content

        rejected = [e for e in self.audit.events if e["event"] == "session_token_rejected"]
        self.assertEqual(ApplicationCodes.MALFORMED_TOKEN, rejected[0]["reason"])
        self.assertEqual("session", rejected[0]["cookie_name"])


    ####################################################################################################
    # Sliding expiration
    ####################################################################################################

    """
        Without renewal, a token is valid up to createdAt + duration and reset after.
    """
    def test_expiry_without_renewal(self):

        config = self.make_config(duration=500, active_duration=0)
        cookie = self.token({"foo": "bar"}, config=config)

        self.clock.now = T0 + 200
        session, transport = self.open(cookie, config=config)
        self.assertEqual({"foo": "bar"}, session.content)
        self.assertIsNone(self.finish(session, transport, config))

        self.clock.now = T0 + 500
        session, transport = self.open(cookie, config=config)
        self.assertEqual({"foo": "bar"}, session.content)

        self.clock.now = T0 + 800
        session, transport = self.open(cookie, config=config)
        self.assertEqual({}, session.content)
        self.assertIn("session_expired", self.audit.names())

        decoded = self.finish(session, transport, config)
        self.assertEqual({}, decoded.content)
        self.assertEqual(T0 + 800, decoded.created_at)


    """
        Inside the active window the deadline moves back by active_duration.
    """
    def test_renewal_inside_active_window(self):

        config = self.make_config(duration=500, active_duration=300)
        cookie = self.token({"foo": "bar"}, config=config)

        # 400ms left: more than the active window, accepted as-is
        self.clock.now = T0 + 100
        session, transport = self.open(cookie, config=config)
        self.assertEqual({"foo": "bar"}, session.content)
        self.assertIsNone(self.finish(session, transport, config))

        # 200ms left: renewed
        self.clock.now = T0 + 300
        session, transport = self.open(cookie, config=config)
        self.assertEqual({"foo": "bar"}, session.content)
        self.assertEqual(millis_to_datetime(T0 + 300 + 500 + 1000), session.expires)

        decoded = self.finish(session, transport, config)
        self.assertEqual({"foo": "bar"}, decoded.content)
        self.assertEqual(T0 + 300, decoded.created_at)
        self.assertEqual(500, decoded.duration)
        self.assertIn("session_renewed", self.audit.names())


    """
        An active user keeps the session alive indefinitely; a long gap still expires it.
    """
    def test_renewal_loop_then_gap(self):

        config = self.make_config(duration=500, active_duration=300)
        cookie = self.token({"n": 0}, config=config)

        for i in range(1, 6):
            self.clock.now += 300
            session, transport = self.open(cookie, config=config)
            session.content["n"] = i

            decoded = self.finish(session, transport, config)
            self.assertEqual({"n": i}, decoded.content)
            cookie = transport.written[-1][1]

        self.clock.now += 1000
        session, transport = self.open(cookie, config=config)
        self.assertEqual({}, session.content)


    """
        A renewal window wider than the duration renews on every read while the token is valid.
    """
    def test_wide_renewal_window(self):

        config = self.make_config(duration=300, active_duration=500)
        cookie = self.token({"foo": "bar"}, config=config)

        renewals = 0
        for _ in range(10):
            self.clock.now += 250
            session, transport = self.open(cookie, config=config)
            self.assertEqual({"foo": "bar"}, session.content)

            decoded = self.finish(session, transport, config)
            if decoded is not None:
                renewals += 1
                self.assertTrue(decoded.created_at + decoded.duration > self.clock.now)
                cookie = transport.written[-1][1]

        # Far past the original 300ms lifetime, still alive
        self.assertGreater(renewals, 0)
        self.assertGreater(self.clock.now, T0 + 2000)

        self.clock.now += 2000
        session, transport = self.open(cookie, config=config)
        self.assertEqual({}, session.content)


    ####################################################################################################
    # Duration changes
    ####################################################################################################

    def _duration_and_write(self, cookie, duration_first):

        session, transport = self.open(cookie)

        if duration_first:
            session.set_duration(1000)
            session.content["a"] = 1
        else:
            session.content["a"] = 1
            session.set_duration(1000)

        return self.finish(session, transport)


    """
        A content write and set_duration in one request commute, with or without an incoming cookie.
    """
    def test_set_duration_commutes_with_writes(self):

        self.clock.now = T0 + 50

        for cookie, expected in ((None, {"a": 1}), (self.token({"x": 1}), {"x": 1, "a": 1})):
            for duration_first in (True, False):
                with self.subTest(cookie=cookie is not None, duration_first=duration_first):
                    decoded = self._duration_and_write(cookie, duration_first)

                    self.assertEqual(expected, decoded.content)
                    self.assertEqual(1000, decoded.duration)
                    self.assertEqual(T0 + 50, decoded.created_at)


    def test_set_duration_alone_writes_cookie(self):

        session, transport = self.open(self.token({"x": 1}))
        session.set_duration(60000)

        self.assertEqual(millis_to_datetime(T0 + 60000 + 1000), session.expires)

        decoded = self.finish(session, transport)
        self.assertEqual({"x": 1}, decoded.content)
        self.assertEqual(60000, decoded.duration)
        self.assertIn("session_duration_changed", self.audit.names())


    def test_set_duration_validates(self):

        session, _ = self.open()

        for bad in (-1, "1000", 1.5, True):
            with self.subTest(duration=bad):
                with self.assertRaises(ConfigurationError):
                    session.set_duration(bad)


    ####################################################################################################
    # Lifetime models
    ####################################################################################################

    def test_default_expiry(self):

        session, _ = self.open()
        self.assertEqual(millis_to_datetime(T0 + self.config.duration + 1000), session.expires)


    def test_ephemeral_config_has_no_expiry(self):

        config = self.make_config(cookie={"ephemeral": True})
        session, transport = self.open(config=config)
        session.content["a"] = 1

        session.finalize()
        self.assertIsNone(session.expires)
        self.assertIsNone(transport.written[0][2]["expires"])


    def test_set_duration_can_make_session_ephemeral(self):

        session, transport = self.open()
        session.set_duration(1000, ephemeral=True)

        self.assertTrue(session.ephemeral)
        self.assertIsNone(session.expires)

        # The shared config is untouched
        self.assertFalse(self.config.cookie.ephemeral)

        session.finalize()
        self.assertIsNone(transport.written[0][2]["expires"])


    """
        Durations reaching past the year 9999 clamp the expiry instead of failing.
    """
    def test_far_future_duration(self):

        latest = datetime.max.replace(tzinfo=timezone.utc)

        session, transport = self.open(self.token({"x": 1}))
        session.set_duration(10 ** 16)
        self.assertEqual(latest, session.expires)

        decoded = self.finish(session, transport)
        self.assertEqual({"x": 1}, decoded.content)
        self.assertEqual(10 ** 16, decoded.duration)
        self.assertEqual(latest, transport.written[0][2]["expires"])

        config = self.make_config(duration=10 ** 16)
        session, _ = self.open(config=config)
        self.assertEqual(latest, session.expires)

        config = self.make_config(cookie={"max_age": 10 ** 16})
        session, _ = self.open(config=config)
        self.assertEqual(latest, session.expires)


    """
        With maxAge the expiry is fixed at construction and ignores duration changes.
    """
    def test_max_age_expiry(self):

        config = self.make_config(cookie={"max_age": 60000})
        session, transport = self.open(config=config)

        self.assertEqual(millis_to_datetime(T0 + 60000), session.expires)

        self.clock.now = T0 + 10
        session.set_duration(5000)
        self.assertEqual(millis_to_datetime(T0 + 60000), session.expires)

        session.finalize()
        attributes = transport.written[0][2]
        self.assertEqual(60, attributes["max_age"])
        self.assertEqual(millis_to_datetime(T0 + 60000), attributes["expires"])


    def test_max_age_forbids_ephemeral_duration(self):

        config = self.make_config(cookie={"max_age": 60000})
        session, _ = self.open(config=config)

        with self.assertRaises(ConfigurationError) as cm:
            session.set_duration(1000, ephemeral=True)

        self.assertEqual(ApplicationCodes.EPHEMERAL_WITH_MAX_AGE, cm.exception.application_code)


    ####################################################################################################
    # Dirty tracking and finalize
    ####################################################################################################

    """
        Mutating a nested value is detected without an explicit flag.
    """
    def test_nested_mutation_is_dirty(self):

        session, transport = self.open(self.token({"list": [1]}))
        session.content["list"].append(2)

        self.assertFalse(session.dirty)
        self.assertTrue(session.is_dirty())
        self.assertEqual({"list": [1, 2]}, self.finish(session, transport).content)


    def test_key_order_is_not_a_change(self):

        session, _ = self.open(self.token({"a": 1, "b": 2}))
        content = session.content
        value = content.pop("a")
        content["a"] = value

        self.assertFalse(session.is_dirty())


    def test_finalize_runs_once(self):

        session, transport = self.open()
        session.content["a"] = 1

        self.assertTrue(session.finalize())
        self.assertFalse(session.finalize())
        self.assertEqual(1, len(transport.written))


    def test_cookie_attributes_defaults(self):

        session, transport = self.open()
        session.content["a"] = 1
        session.finalize()

        attributes = transport.written[0][2]
        self.assertTrue(attributes["httponly"])
        self.assertFalse(attributes["secure"])
        self.assertNotIn("max_age", attributes)


    ####################################################################################################
    # Content replacement and reset
    ####################################################################################################

    def test_replace_content(self):

        session, transport = self.open(self.token({"old": 1}))
        session.content = {"new": 2}

        self.assertEqual({"new": 2}, self.finish(session, transport).content)


    def test_replace_with_non_mapping(self):

        session, _ = self.open()

        for bad in ("string", [("a", 1)], 5, None):
            with self.subTest(value=bad):
                with self.assertRaises(SessionMisuseError) as cm:
                    session.content = bad

                self.assertIsInstance(cm.exception, TypeError)
                self.assertEqual(ApplicationCodes.INVALID_CONTENT, cm.exception.application_code)


    def test_reset_preserves_listed_keys(self):

        session, transport = self.open(self.token({"a": 1, "b": 2, "c": 3}, created_at=T0 - 100))
        self.clock.now = T0 + 10

        session.reset(["a", "c"])

        decoded = self.finish(session, transport)
        self.assertEqual({"a": 1, "c": 3}, decoded.content)
        self.assertEqual(T0 + 10, decoded.created_at)


    def test_reset_restores_configured_duration(self):

        session, transport = self.open(self.token({"a": 1}, duration=1000))
        session.content
        self.assertEqual(1000, session.duration)

        session.destroy()

        decoded = self.finish(session, transport)
        self.assertEqual({}, decoded.content)
        self.assertEqual(self.config.duration, decoded.duration)


    def test_unserializable_content_fails_at_finalize(self):

        session, _ = self.open()
        session.content["bad"] = object()

        with self.assertRaises(SessionMisuseError):
            session.finalize()



class TestSessionProxy(unittest.TestCase):

    def setUp(self) -> None:
        self.clock = FakeClock()
        self.config = build_session_config(secret="yo", cookie_name="session")
        self.transport = FakeTransport({"session": CODEC.encode(self.config, {"a": 1}, self.config.duration, T0)})
        self.session = ClientSession(self.transport, self.config, audit_log=RecordingAudit(), clock=self.clock)
        self.proxy = SessionProxy(self.session)


    def test_mapping_access(self):

        self.assertEqual(1, self.proxy["a"])
        self.assertEqual(1, self.proxy.get("a"))
        self.assertIsNone(self.proxy.get("missing"))
        self.assertIn("a", self.proxy)
        self.assertEqual(1, len(self.proxy))
        self.assertEqual({"a": 1}, dict(self.proxy))

        with self.assertRaises(KeyError):
            self.proxy["missing"]


    def test_set_and_delete(self):

        self.proxy.set("b", [1, 2])
        self.proxy["c"] = "x"
        self.proxy.delete("a")
        self.proxy.delete("never-there")
        del self.proxy["c"]

        self.assertEqual({"b": [1, 2]}, dict(self.proxy))


    """
        Lifetime operations never collide with content keys of the same name.
    """
    def test_method_names_are_not_content(self):

        self.proxy["reset"] = "value"
        self.proxy["set_duration"] = 5

        self.assertEqual("value", self.proxy["reset"])
        self.assertTrue(callable(self.proxy.reset))

        self.proxy.reset(["reset"])
        self.assertEqual({"reset": "value"}, dict(self.proxy))


    def test_replace_and_set_duration(self):

        self.proxy.replace({"z": 26})
        self.proxy.set_duration(1000)

        self.session.finalize()
        decoded = CODEC.decode(self.config, self.transport.written[0][1])

        self.assertEqual({"z": 26}, decoded.content)
        self.assertEqual(1000, decoded.duration)
        self.assertIs(self.session, self.proxy.session)


    def test_replace_rejects_non_mapping(self):

        with self.assertRaises(TypeError):
            self.proxy.replace(["not", "a", "mapping"])


if __name__ == "__main__":
    unittest.main()
