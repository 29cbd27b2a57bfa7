#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: testConfigHandler.py

    Description:
        Test suite for building SessionConfig from keyword options and from a
        flat CLIENT_SESSIONS_* mapping: defaults, validation failures, text
        coercion, base64url key decoding and cookie option handling.
"""

import dataclasses
import os
import unittest

from client_sessions.handlers.config_handler import CookieOptions, SessionConfig, build_cookie_options, build_session_config, load_config_from_mapping
from client_sessions.handlers.error_handler import ConfigurationError, ApplicationCodes
import client_sessions.handlers.sanitization_validation as VALIDATION


class TestBuildSessionConfig(unittest.TestCase):

    def assertConfigError(self, code, **kwargs):
        with self.assertRaises(ConfigurationError) as cm:
            build_session_config(**kwargs)
        self.assertEqual(code, cm.exception.application_code)
        self.assertEqual(500, cm.exception.http_code)
        return cm.exception


    def test_defaults(self):

        config = build_session_config(secret="yo")

        self.assertEqual("session_state", config.cookie_name)
        self.assertEqual("session_state", config.request_key)
        self.assertEqual(24 * 60 * 60 * 1000, config.duration)
        self.assertEqual(5 * 60 * 1000, config.active_duration)
        self.assertEqual(CookieOptions(), config.cookie)
        self.assertTrue(config.cookie.http_only)
        self.assertFalse(config.cookie.secure)


    def test_request_key_defaults_to_cookie_name(self):

        self.assertEqual("auth", build_session_config(secret="yo", cookie_name="auth").request_key)
        self.assertEqual("sess", build_session_config(secret="yo", cookie_name="auth", request_key="sess").request_key)


    """
        The config is frozen; request code cannot mutate it.
    """
    def test_config_is_frozen(self):

        config = build_session_config(secret="yo")

        with self.assertRaises(dataclasses.FrozenInstanceError):
            config.duration = 1  # type: ignore[misc]

        with self.assertRaises(dataclasses.FrozenInstanceError):
            config.cookie.ephemeral = True  # type: ignore[misc]


    def test_active_duration_zero_allowed(self):
        self.assertEqual(0, build_session_config(secret="yo", active_duration=0).active_duration)


    def test_missing_secret(self):
        self.assertConfigError(ApplicationCodes.MISSING_SECRET)


    def test_invalid_cookie_names(self):

        for bad in ("", "a=b", 5):
            with self.subTest(cookie_name=bad):
                error = self.assertConfigError(ApplicationCodes.INVALID_COOKIE_NAME, secret="yo", cookie_name=bad)
                self.assertEqual("cookie_name", error.field)


    def test_invalid_durations(self):

        for field in ("duration", "active_duration"):
            for bad in (-1, "10", 1.5, False):
                with self.subTest(field=field, value=bad):
                    self.assertConfigError(ApplicationCodes.INVALID_DURATION, secret="yo", **{field: bad})


    def test_algorithm_errors_propagate(self):

        self.assertConfigError(ApplicationCodes.UNSUPPORTED_ALGORITHM, secret="yo", encryption_algorithm="rc4")
        self.assertConfigError(ApplicationCodes.IDENTICAL_KEYS, encryption_key=bytes(32), signature_key=bytes(32))


    def test_cookie_options(self):

        config = build_session_config(secret="yo", cookie={"secure": True, "max_age": 60000, "path": "/app", "same_site": "Lax", "domain": None})

        self.assertTrue(config.cookie.secure)
        self.assertEqual(60000, config.cookie.max_age)
        self.assertEqual("/app", config.cookie.path)
        self.assertEqual("Lax", config.cookie.same_site)
        self.assertIsNone(config.cookie.domain)
        self.assertTrue(config.cookie.http_only)


    def test_cookie_options_errors(self):

        self.assertConfigError(ApplicationCodes.INVALID_COOKIE_OPTIONS, secret="yo", cookie={"maxAge": 1})
        self.assertConfigError(ApplicationCodes.INVALID_COOKIE_OPTIONS, secret="yo", cookie="secure")
        self.assertConfigError(ApplicationCodes.INVALID_DURATION, secret="yo", cookie={"max_age": -5})


    def test_build_cookie_options_passthrough(self):

        options = CookieOptions(ephemeral=True)

        self.assertIs(options, build_cookie_options(options))
        self.assertEqual(CookieOptions(), build_cookie_options(None))



class TestLoadConfigFromMapping(unittest.TestCase):

    def test_reads_prefixed_keys(self):

        config = load_config_from_mapping({
            "CLIENT_SESSIONS_SECRET": "yo",
            "CLIENT_SESSIONS_COOKIE_NAME": "auth",
            "CLIENT_SESSIONS_REQUEST_KEY": "session",
            "CLIENT_SESSIONS_DURATION": "60000",
            "CLIENT_SESSIONS_ACTIVE_DURATION": 1000,
            "CLIENT_SESSIONS_COOKIE_SECURE": "true",
            "CLIENT_SESSIONS_COOKIE_HTTP_ONLY": "0",
            "CLIENT_SESSIONS_COOKIE_PATH": "/",
            "UNRELATED": "ignored",
        })

        self.assertIsInstance(config, SessionConfig)
        self.assertEqual("auth", config.cookie_name)
        self.assertEqual("session", config.request_key)
        self.assertEqual(60000, config.duration)
        self.assertEqual(1000, config.active_duration)
        self.assertTrue(config.cookie.secure)
        self.assertFalse(config.cookie.http_only)
        self.assertEqual("/", config.cookie.path)


    def test_custom_prefix(self):

        config = load_config_from_mapping({"APP_SECRET": "yo", "APP_COOKIE_EPHEMERAL": "yes"}, prefix="APP_")

        self.assertTrue(config.cookie.ephemeral)


    """
        Explicit keys arrive as unpadded base64url text.
    """
    def test_base64url_keys(self):

        enc, sig = os.urandom(16), os.urandom(64)
        config = load_config_from_mapping({
            "CLIENT_SESSIONS_ENCRYPTION_KEY": VALIDATION.encode_bytes_to_base64url(enc),
            "CLIENT_SESSIONS_SIGNATURE_KEY": VALIDATION.encode_bytes_to_base64url(sig),
            "CLIENT_SESSIONS_ENCRYPTION_ALGORITHM": "aes128",
            "CLIENT_SESSIONS_SIGNATURE_ALGORITHM": "sha512",
        })

        self.assertEqual(enc, config.key_material.encryption_key)
        self.assertEqual(sig, config.key_material.signature_key)


    def test_raw_byte_keys(self):

        enc, sig = os.urandom(32), os.urandom(32)
        config = load_config_from_mapping({"CLIENT_SESSIONS_ENCRYPTION_KEY": enc, "CLIENT_SESSIONS_SIGNATURE_KEY": sig})

        self.assertEqual(enc, config.key_material.encryption_key)


    def test_invalid_values(self):

        cases = [
            ({"CLIENT_SESSIONS_SECRET": "yo", "CLIENT_SESSIONS_ENCRYPTION_KEY": "not base64!"}, ApplicationCodes.INVALID_KEY_TYPE),
            ({"CLIENT_SESSIONS_SECRET": "yo", "CLIENT_SESSIONS_DURATION": "a day"}, ApplicationCodes.INVALID_DURATION),
            ({"CLIENT_SESSIONS_SECRET": "yo", "CLIENT_SESSIONS_COOKIE_MAX_AGE": "-1"}, ApplicationCodes.INVALID_DURATION),
            ({}, ApplicationCodes.MISSING_SECRET),
        ]

        for mapping, code in cases:
            with self.subTest(mapping=mapping):
                with self.assertRaises(ConfigurationError) as cm:
                    load_config_from_mapping(mapping)

                self.assertEqual(code, cm.exception.application_code)


if __name__ == "__main__":
    unittest.main()
