#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: testCodecHandler.py

    Description:
        Test suite for the token codec. Covers a known-answer token, encode/
        decode round trips across algorithms and edge values, tampering with
        every authenticated field, cross-cookie-name reuse, forged plaintexts,
        and malformed input that must degrade to None instead of raising.
"""

import dataclasses
import os
import unittest
from unittest import mock

from client_sessions.encryption.cipher_manager import CipherManager
from client_sessions.encryption.signature_manager import SignatureManager
from client_sessions.handlers.config_handler import build_session_config
from client_sessions.handlers.error_handler import AuthenticationFailure, ConfigurationError, SessionMisuseError, ApplicationCodes
import client_sessions.handlers.codec_handler as CODEC
import client_sessions.handlers.sanitization_validation as VALIDATION


class TestCodecHandler(unittest.TestCase):

    # secret "yo", cookie "session", IV 00..0f, createdAt 1400000000000, duration 24h
    KNOWN_TOKEN = ("AAECAwQFBgcICQoLDA0ODw"
                   ".3YDSsfwJMxFRArnM8oWJz-2MAqUDf4IBqqx8Dpfbp1d3SHsW6ghv44LmTmtscVaP"
                   ".1400000000000"
                   ".86400000"
                   ".LEgOmkpbxwIcynRfC8AWGcUC1bDQ8dq08EMq1Eh903k")
    KNOWN_CONTENT = {"foo": "bar", "n": [1, 2, 3]}
    KNOWN_CREATED_AT = 1400000000000
    KNOWN_DURATION = 86400000

    def setUp(self) -> None:
        self.config = build_session_config(secret="yo", cookie_name="session")


    def assertRejected(self, token, code, config=None):
        with self.assertRaises(AuthenticationFailure) as cm:
            CODEC.unbox(config or self.config, token)
        self.assertEqual(code, cm.exception.application_code)
        self.assertIsNone(CODEC.decode(config or self.config, token))


    """
        Replace one dot-separated field of a token.
    """
    def _with_field(self, token, index, value):
        fields = token.split(".")
        fields[index] = value
        return ".".join(fields)


    """
        Flip one byte inside a base64url field, keeping it canonical.
    """
    def _flip_field(self, token, index, position=0):
        raw = VALIDATION.decode_base64url_to_bytes("field", token.split(".")[index])
        raw[position] ^= 0x01
        return self._with_field(token, index, VALIDATION.encode_bytes_to_base64url(raw))


    """
        Build a correctly signed token around an arbitrary plaintext.
    """
    def _forge(self, plaintext, created_at=1, duration=1000):
        iv = CipherManager.generate_iv()
        ciphertext = self.config.key_material.cipher.encrypt(iv, plaintext)
        mac = CODEC.compute_hmac(self.config, iv, ciphertext, created_at, duration)
        return ".".join([VALIDATION.encode_bytes_to_base64url(iv),
                         VALIDATION.encode_bytes_to_base64url(ciphertext),
                         str(created_at),
                         str(duration),
                         VALIDATION.encode_bytes_to_base64url(mac)])


    ####################################################################################################
    # Known answers
    ####################################################################################################

    def test_decode_known_token(self):

        decoded = CODEC.decode(self.config, self.KNOWN_TOKEN)

        self.assertIsNotNone(decoded)
        self.assertEqual(self.KNOWN_CONTENT, decoded.content)
        self.assertEqual(self.KNOWN_CREATED_AT, decoded.created_at)
        self.assertEqual(self.KNOWN_DURATION, decoded.duration)


    """
        With the IV pinned, encode() reproduces the known token byte for byte.
    """
    def test_encode_known_token(self):

        with mock.patch.object(CipherManager, "generate_iv", side_effect=lambda: bytearray(range(16))):
            token = CODEC.encode(self.config, self.KNOWN_CONTENT, self.KNOWN_DURATION, self.KNOWN_CREATED_AT)

        self.assertEqual(self.KNOWN_TOKEN, token)


    ####################################################################################################
    # Round trips
    ####################################################################################################

    def test_round_trip_edge_values(self):

        cases = [
            ({}, 0, 0),
            ({"nested": {"list": [1, {"deep": None}], "flag": True}}, 1, 5),
            ({"név": "ünïcødé ☃"}, 86400000, 1700000000000),
        ]

        for content, duration, created_at in cases:
            with self.subTest(content=content):
                decoded = CODEC.decode(self.config, CODEC.encode(self.config, content, duration, created_at))

                self.assertEqual(content, decoded.content)
                self.assertEqual(duration, decoded.duration)
                self.assertEqual(created_at, decoded.created_at)


    """
        Defaults: 24h duration and a createdAt of "now".
    """
    def test_encode_defaults(self):

        before = VALIDATION.current_time_millis()
        decoded = CODEC.decode(self.config, CODEC.encode(self.config, {"a": 1}))
        after = VALIDATION.current_time_millis()

        self.assertEqual(24 * 60 * 60 * 1000, decoded.duration)
        self.assertTrue(before <= decoded.created_at <= after)


    """
        Two encodings of the same content differ (fresh IV each time).
    """
    def test_fresh_iv_per_token(self):

        first = CODEC.encode(self.config, {"a": 1}, 1000, 1)
        second = CODEC.encode(self.config, {"a": 1}, 1000, 1)

        self.assertNotEqual(first.split(".")[0], second.split(".")[0])
        self.assertNotEqual(first, second)


    def test_round_trip_non_default_algorithms(self):

        config = build_session_config(encryption_key=os.urandom(16),
                                      signature_key=os.urandom(64),
                                      encryption_algorithm="aes128",
                                      signature_algorithm="sha512-drop256",
                                      cookie_name="session")

        token = CODEC.encode(config, {"a": 1}, 1000, 1)
        mac_text = token.split(".")[4]

        # 32 bytes of MAC, unpadded
        self.assertEqual(43, len(mac_text))
        self.assertEqual({"a": 1}, CODEC.decode(config, token).content)


    ####################################################################################################
    # Tampering
    ####################################################################################################

    def test_tampered_mac(self):
        self.assertRejected(self._flip_field(self.KNOWN_TOKEN, 4, position=31), ApplicationCodes.MAC_MISMATCH)

    def test_tampered_ciphertext(self):
        self.assertRejected(self._flip_field(self.KNOWN_TOKEN, 1, position=5), ApplicationCodes.MAC_MISMATCH)

    def test_tampered_iv(self):
        self.assertRejected(self._flip_field(self.KNOWN_TOKEN, 0), ApplicationCodes.MAC_MISMATCH)

    def test_tampered_created_at(self):
        self.assertRejected(self._with_field(self.KNOWN_TOKEN, 2, "1400000000001"), ApplicationCodes.MAC_MISMATCH)

    def test_tampered_duration(self):
        self.assertRejected(self._with_field(self.KNOWN_TOKEN, 3, "999999999999"), ApplicationCodes.MAC_MISMATCH)

    """
        Changing only the unused low bits of the last character is still rejected.
    """
    def test_non_canonical_last_character(self):
        self.assertRejected(self.KNOWN_TOKEN[:-1] + "l", ApplicationCodes.INVALID_BASE64URL)

    def test_truncated_mac(self):
        mac = VALIDATION.decode_base64url_to_bytes("mac", self.KNOWN_TOKEN.split(".")[4])
        short = VALIDATION.encode_bytes_to_base64url(mac[:16])
        self.assertRejected(self._with_field(self.KNOWN_TOKEN, 4, short), ApplicationCodes.MAC_MISMATCH)

    """
        unbox() authenticates through the configured signer and accepts only its MAC length.
    """
    def test_unbox_uses_signer(self):

        signer = self.config.key_material.signer
        mac = VALIDATION.decode_base64url_to_bytes("mac", self.KNOWN_TOKEN.split(".")[4])
        self.assertEqual(signer.mac_length, len(mac))

        longer = VALIDATION.encode_bytes_to_base64url(mac + b"\x00")
        self.assertRejected(self._with_field(self.KNOWN_TOKEN, 4, longer), ApplicationCodes.MAC_MISMATCH)

        seen = []

        def refuse(expected, *parts):
            seen.append(bytes(expected))
            return False

        with mock.patch.object(SignatureManager, "verify", side_effect=refuse):
            self.assertRejected(self.KNOWN_TOKEN, ApplicationCodes.MAC_MISMATCH)

        # Once from unbox(), once from decode()
        self.assertEqual([bytes(mac), bytes(mac)], seen)

    """
        A different secret cannot authenticate the token.
    """
    def test_wrong_secret(self):
        other = build_session_config(secret="not yo", cookie_name="session")
        self.assertRejected(self.KNOWN_TOKEN, ApplicationCodes.MAC_MISMATCH, config=other)

    """
        Same keys, different cookie name: the MAC verifies but the bound name does not match.
    """
    def test_cross_cookie_name_reuse(self):
        other = build_session_config(secret="yo", cookie_name="other")
        self.assertRejected(self.KNOWN_TOKEN, ApplicationCodes.COOKIE_NAME_MISMATCH, config=other)

    """
        A prefix of the real name must not match either.
    """
    def test_cookie_name_prefix_is_not_enough(self):
        other = build_session_config(secret="yo", cookie_name="sess")
        self.assertRejected(self.KNOWN_TOKEN, ApplicationCodes.COOKIE_NAME_MISMATCH, config=other)


    ####################################################################################################
    # Forged plaintexts (valid MAC, invalid body)
    ####################################################################################################

    def test_forged_plaintext_without_separator(self):
        self.assertRejected(self._forge(b"sessionfoo"), ApplicationCodes.COOKIE_NAME_MISMATCH)

    def test_forged_plaintext_with_invalid_json(self):
        self.assertRejected(self._forge(b"session={not json"), ApplicationCodes.MALFORMED_JSON)

    def test_forged_plaintext_with_non_object_json(self):
        self.assertRejected(self._forge(b"session=[1,2,3]"), ApplicationCodes.MALFORMED_JSON)

    def test_forged_plaintext_with_invalid_utf8(self):
        self.assertRejected(self._forge(b"session=\xff\xfe"), ApplicationCodes.DECRYPTION_FAILED)

    """
        The JSON body may itself contain '='; only the first one separates the name.
    """
    def test_forged_plaintext_with_equals_in_body(self):
        decoded = CODEC.decode(self.config, self._forge(b'session={"a":"b=c"}'))
        self.assertEqual({"a": "b=c"}, decoded.content)


    ####################################################################################################
    # Malformed input
    ####################################################################################################

    def test_malformed_tokens_decode_to_none(self):

        fields = self.KNOWN_TOKEN.split(".")
        short_iv = VALIDATION.encode_bytes_to_base64url(bytes(8))

        cases = {
            "empty": ("", ApplicationCodes.MALFORMED_TOKEN),
            "garbage": ("garbage", ApplicationCodes.MALFORMED_TOKEN),
            "four fields": (".".join(fields[:4]), ApplicationCodes.MALFORMED_TOKEN),
            "six fields": (self.KNOWN_TOKEN + ".x", ApplicationCodes.MALFORMED_TOKEN),
            "standard alphabet": (self._with_field(self.KNOWN_TOKEN, 1, fields[1].replace("-", "+")), ApplicationCodes.INVALID_BASE64URL),
            "padded": (self._with_field(self.KNOWN_TOKEN, 0, fields[0] + "=="), ApplicationCodes.INVALID_BASE64URL),
            "impossible length": (self._with_field(self.KNOWN_TOKEN, 0, fields[0] + "AAA"), ApplicationCodes.INVALID_BASE64URL),
            "negative created": (self._with_field(self.KNOWN_TOKEN, 2, "-1"), ApplicationCodes.INVALID_TIMESTAMP),
            "float duration": (self._with_field(self.KNOWN_TOKEN, 3, "1e3"), ApplicationCodes.INVALID_TIMESTAMP),
            "empty created": (self._with_field(self.KNOWN_TOKEN, 2, ""), ApplicationCodes.INVALID_TIMESTAMP),
            "short iv": (self._with_field(self.KNOWN_TOKEN, 0, short_iv), ApplicationCodes.INVALID_IV_LENGTH),
        }

        for name, (token, code) in cases.items():
            with self.subTest(case=name):
                self.assertRejected(token, code)


    def test_non_text_tokens_decode_to_none(self):

        for token in (None, 123, b"bytes.token"):
            with self.subTest(token=token):
                self.assertRejected(token, ApplicationCodes.MALFORMED_TOKEN)


    ####################################################################################################
    # Configuration and content errors
    ####################################################################################################

    """
        A hand-built config with an invalid cookie name raises instead of returning None.
    """
    def test_invalid_cookie_name_raises(self):

        for bad_name in ("a=b", "", None):
            with self.subTest(cookie_name=bad_name):
                config = dataclasses.replace(self.config, cookie_name=bad_name)

                with self.assertRaises(ConfigurationError):
                    CODEC.encode(config, {})

                with self.assertRaises(ConfigurationError):
                    CODEC.decode(config, self.KNOWN_TOKEN)


    def test_unserializable_content(self):

        with self.assertRaises(SessionMisuseError) as cm:
            CODEC.encode(self.config, {"x": object()})

        self.assertEqual(ApplicationCodes.UNSERIALIZABLE_CONTENT, cm.exception.application_code)
        self.assertIsInstance(cm.exception, TypeError)


if __name__ == "__main__":
    unittest.main()
