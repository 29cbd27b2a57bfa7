#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: testCookieHandler.py

    Description:
        Test suite for the outgoing cookie attributes and the secure-transport
        check.
"""

import unittest
from datetime import datetime, timezone

from client_sessions.handlers.config_handler import CookieOptions
from client_sessions.handlers.cookie_handler import cookie_attributes, millis_to_datetime, transport_is_secure


class Transport:

    def __init__(self, secure=False, proxy_secure=False):
        self.secure = secure
        self.proxy_secure = proxy_secure

    def is_secure(self):
        return self.secure


class TestCookieHandler(unittest.TestCase):

    EXPIRES = datetime(2030, 1, 1, tzinfo=timezone.utc)

    def test_default_attributes(self):

        attributes = cookie_attributes(CookieOptions(), self.EXPIRES)

        self.assertEqual({"expires": self.EXPIRES, "httponly": True, "secure": False}, attributes)


    def test_pass_through_attributes(self):

        options = CookieOptions(http_only=False, secure=True, path="/app", domain="example.com", same_site="Strict")
        attributes = cookie_attributes(options, self.EXPIRES)

        self.assertFalse(attributes["httponly"])
        self.assertTrue(attributes["secure"])
        self.assertEqual("/app", attributes["path"])
        self.assertEqual("example.com", attributes["domain"])
        self.assertEqual("Strict", attributes["samesite"])


    """
        maxAge is configured in milliseconds and emitted in whole seconds, rounded up.
    """
    def test_max_age_in_seconds(self):

        self.assertEqual(91, cookie_attributes(CookieOptions(max_age=90500), self.EXPIRES)["max_age"])
        self.assertEqual(1, cookie_attributes(CookieOptions(max_age=900), self.EXPIRES)["max_age"])
        self.assertEqual(60, cookie_attributes(CookieOptions(max_age=60000), self.EXPIRES)["max_age"])
        self.assertEqual(0, cookie_attributes(CookieOptions(max_age=0), self.EXPIRES)["max_age"])


    def test_ephemeral_has_no_expiry(self):
        self.assertIsNone(cookie_attributes(CookieOptions(ephemeral=True), None)["expires"])


    def test_millis_to_datetime(self):

        self.assertEqual(datetime(1970, 1, 1, tzinfo=timezone.utc), millis_to_datetime(0))
        self.assertEqual(datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc), millis_to_datetime(1700000000000))

    """
        Instants past the year 9999 clamp to the largest datetime instead of overflowing.
    """
    def test_millis_to_datetime_clamps_far_future(self):

        latest = datetime.max.replace(tzinfo=timezone.utc)
        self.assertEqual(latest, millis_to_datetime(10 ** 16))
        self.assertEqual(latest, millis_to_datetime(253402300799999))
        self.assertEqual(datetime(9999, 12, 31, 23, 59, 59, tzinfo=timezone.utc), millis_to_datetime(253402300799000))


    def test_transport_is_secure(self):

        self.assertFalse(transport_is_secure(Transport()))
        self.assertTrue(transport_is_secure(Transport(secure=True)))
        self.assertTrue(transport_is_secure(Transport(proxy_secure=True)))


if __name__ == "__main__":
    unittest.main()
