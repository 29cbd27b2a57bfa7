#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: testSignatureManager.py

    Description:
        Test suite for SignatureManager. Covers known-answer HMAC values for
        full and "-dropN" truncated digests, MAC lengths per algorithm,
        constant-time comparison, buffer zeroing, and rejection of unknown
        algorithm names.
"""

import unittest

from client_sessions.encryption.signature_manager import SignatureManager, constant_time_equals, zero_buffer
from client_sessions.handlers.error_handler import ConfigurationError, ApplicationCodes


class TestSignatureManager(unittest.TestCase):

    IV = bytes(range(0xA0, 0xB0))
    CIPHERTEXT = b"0123456789abcdef0123456789abcdef"
    CREATED_AT = b"1400000000000"
    DURATION = b"86400000"

    # HMAC(key, iv "." ciphertext "." createdAt "." duration), computed independently
    SHA256_FULL = bytes.fromhex("1b2562a348dcd142602db96e6b17fa386ee94b6660f7a4d75ebe1804ed13bfbf")
    SHA384_FULL = bytes.fromhex("0c1997ac4968ce6bac5cbd69961a0bd220aafe8a8e66751db549fe311a61120ef584c426e3eab49bc10b5d798a545fcb")
    SHA512_FULL = bytes.fromhex("770615e15b551c0f3db1a0ad01e72951e24ba74d20bcb571d99e6e18e088113f"
                                "fd1772760ff9c81174f3fbe2a1ee0765afc586f7b5704ed72e4ec7e989852eeb")

    def _parts(self):
        return (self.IV, b".", self.CIPHERTEXT, b".", self.CREATED_AT, b".", self.DURATION)

    """
        sha256 emits the full 32-byte digest.
    """
    def test_sha256_known_answer(self):

        mac = SignatureManager("sha256", bytes(range(32))).sign(*self._parts())

        self.assertEqual(self.SHA256_FULL, bytes(mac))

    """
        dropN keeps exactly the leading N/8 bytes of the digest.
    """
    def test_drop_variants_known_answers(self):

        cases = [
            ("sha256-drop128", bytes(range(32)), self.SHA256_FULL, 16),
            ("sha384-drop192", bytes(range(48)), self.SHA384_FULL, 24),
            ("sha512-drop256", bytes(range(64)), self.SHA512_FULL, 32),
        ]

        for algorithm, key, full, expected_len in cases:
            with self.subTest(algorithm=algorithm):
                manager = SignatureManager(algorithm, key)
                mac = manager.sign(*self._parts())

                self.assertEqual(expected_len, len(mac))
                self.assertEqual(expected_len, manager.mac_length)
                self.assertEqual(full[:expected_len], bytes(mac))

    """
        Untruncated algorithms report their digest size.
    """
    def test_mac_length_full_digests(self):

        self.assertEqual(32, SignatureManager("sha256", bytes(32)).mac_length)
        self.assertEqual(48, SignatureManager("SHA384", bytes(48)).mac_length)
        self.assertEqual(64, SignatureManager("sha512", bytes(64)).mac_length)

    """
        Algorithm names are case-insensitive.
    """
    def test_algorithm_name_is_normalized(self):

        manager = SignatureManager("SHA256-Drop128", bytes(range(32)))

        self.assertEqual("sha256-drop128", manager.algorithm)
        self.assertEqual(self.SHA256_FULL[:16], bytes(manager.sign(*self._parts())))

    """
        Unknown algorithms are a configuration error.
    """
    def test_unknown_algorithm_rejected(self):

        for bad in ("md5", "sha256-drop64", "sha1", ""):
            with self.subTest(bad=bad):
                with self.assertRaises(ConfigurationError) as cm:
                    SignatureManager(bad, bytes(64))

                self.assertEqual(ApplicationCodes.UNSUPPORTED_ALGORITHM, cm.exception.application_code)

    """
        verify() accepts the right MAC and rejects a modified or short one.
    """
    def test_verify(self):

        manager = SignatureManager("sha256", bytes(range(32)))

        self.assertTrue(manager.verify(self.SHA256_FULL, *self._parts()))

        tampered = bytearray(self.SHA256_FULL)
        tampered[-1] ^= 0x01
        self.assertFalse(manager.verify(tampered, *self._parts()))
        self.assertFalse(manager.verify(self.SHA256_FULL[:16], *self._parts()))

    """
        constant_time_equals compares content and length.
    """
    def test_constant_time_equals(self):

        self.assertTrue(constant_time_equals(b"abc", bytearray(b"abc")))
        self.assertFalse(constant_time_equals(b"abc", b"abd"))
        self.assertFalse(constant_time_equals(b"abc", b"abcd"))

    """
        zero_buffer clears mutable buffers and leaves others alone.
    """
    def test_zero_buffer(self):

        buf = bytearray(b"secret")
        self.assertIs(buf, zero_buffer(buf))
        self.assertEqual(bytearray(6), buf)

        self.assertEqual(b"immutable", zero_buffer(b"immutable"))
        self.assertIsNone(zero_buffer(None))


if __name__ == "__main__":
    unittest.main()
