#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: testSanitizationValidation.py

    Description:
        Test suite for the shared encoding and validation helpers.
"""

import unittest

from client_sessions.handlers.error_handler import AuthenticationFailure, ConfigurationError, SessionMisuseError, ApplicationCodes
import client_sessions.handlers.sanitization_validation as VALIDATION


class TestSanitizationValidation(unittest.TestCase):

    def test_base64url_encoding(self):

        self.assertEqual("-_8", VALIDATION.encode_bytes_to_base64url(b"\xfb\xff"))
        self.assertEqual("", VALIDATION.encode_bytes_to_base64url(b""))
        self.assertEqual("AQ", VALIDATION.encode_bytes_to_base64url(b"\x01"))


    def test_base64url_decoding(self):

        decoded = VALIDATION.decode_base64url_to_bytes("f", "-_8")

        self.assertIsInstance(decoded, bytearray)
        self.assertEqual(b"\xfb\xff", bytes(decoded))
        self.assertEqual(b"", bytes(VALIDATION.decode_base64url_to_bytes("f", "")))


    def test_base64url_rejections(self):

        for bad in ("+/8", "AQ==", "A", "AR", "a b", None, b"AQ"):
            with self.subTest(text=bad):
                with self.assertRaises(AuthenticationFailure) as cm:
                    VALIDATION.decode_base64url_to_bytes("f", bad)

                self.assertEqual(ApplicationCodes.INVALID_BASE64URL, cm.exception.application_code)
                self.assertEqual("f", cm.exception.field)


    def test_content_json(self):

        self.assertEqual('{"b":1,"a":"é"}', VALIDATION.encode_content_to_json({"b": 1, "a": "é"}))
        self.assertEqual(VALIDATION.canonical_content_json({"b": 1, "a": 2}), VALIDATION.canonical_content_json({"a": 2, "b": 1}))

        with self.assertRaises(SessionMisuseError):
            VALIDATION.encode_content_to_json({"s": {1, 2}})

        with self.assertRaises(SessionMisuseError):
            VALIDATION.canonical_content_json({"s": {1, 2}})


    def test_decode_json_to_content(self):

        self.assertEqual({"a": [1]}, VALIDATION.decode_json_to_content('{"a":[1]}'))

        for bad in ("", "null", "[1]", "\"text\"", "{"):
            with self.subTest(text=bad):
                with self.assertRaises(AuthenticationFailure) as cm:
                    VALIDATION.decode_json_to_content(bad)

                self.assertEqual(ApplicationCodes.MALFORMED_JSON, cm.exception.application_code)


    def test_parse_decimal_field(self):

        self.assertEqual(0, VALIDATION.parse_decimal_field("d", "0"))
        self.assertEqual(1400000000000, VALIDATION.parse_decimal_field("d", "1400000000000"))

        for bad in ("", "-1", "+1", "1.0", " 1", "0x10", None):
            with self.subTest(text=bad):
                with self.assertRaises(AuthenticationFailure):
                    VALIDATION.parse_decimal_field("d", bad)


    def test_coercions(self):

        self.assertTrue(VALIDATION.coerce_to_bool("Yes"))
        self.assertTrue(VALIDATION.coerce_to_bool(" on "))
        self.assertFalse(VALIDATION.coerce_to_bool("false"))
        self.assertFalse(VALIDATION.coerce_to_bool(""))
        self.assertTrue(VALIDATION.coerce_to_bool(1))

        self.assertEqual(42, VALIDATION.coerce_to_int(" 42 ", "n"))
        self.assertEqual(7, VALIDATION.coerce_to_int(7, "n"))

        with self.assertRaises(ConfigurationError):
            VALIDATION.coerce_to_int("4.2", "n")


    def test_validators(self):

        VALIDATION.validate_cookie_name("session")
        VALIDATION.validate_duration(0, "duration")

        with self.assertRaises(ConfigurationError):
            VALIDATION.validate_cookie_name("a=b")

        with self.assertRaises(ConfigurationError):
            VALIDATION.validate_duration(True, "duration")


if __name__ == "__main__":
    unittest.main()
