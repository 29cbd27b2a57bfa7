#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: testKeyManager.py

    Description:
        Test suite for key derivation and validation. Checks the derived keys
        against known answers, the independence of the two labels, and every
        ConfigurationError branch of validate_keys / build_key_material.
"""

import dataclasses
import os
import unittest

from client_sessions.encryption.key_manager import KeyMaterial, build_key_material, derive_key, validate_keys
from client_sessions.handlers.error_handler import ConfigurationError, ApplicationCodes
import client_sessions.constants as CONSTANTS


class TestKeyManager(unittest.TestCase):

    SECRET = "yo"
    ENC_KEY = bytes.fromhex("8e3d6df7d62c2b2548e7afc5e73902f66e24b183e3aa5a3f5fb040c1d48aac82")
    SIG_KEY = bytes.fromhex("298f41ac5d5dabefb370a8674e6aa02009780eba5ee65ba65d3a84f9173003b4")

    def assertConfigError(self, code, fn, *args, **kwargs):
        with self.assertRaises(ConfigurationError) as cm:
            fn(*args, **kwargs)
        self.assertEqual(code, cm.exception.application_code)

    """
        derive_key() is HMAC-SHA256(secret, label).
    """
    def test_derive_key_known_answers(self):

        self.assertEqual(self.ENC_KEY, derive_key(self.SECRET, CONSTANTS._KDF_ENCRYPTION_LABEL))
        self.assertEqual(self.SIG_KEY, derive_key(self.SECRET, CONSTANTS._KDF_SIGNATURE_LABEL))
        self.assertEqual(self.ENC_KEY, derive_key(b"yo", CONSTANTS._KDF_ENCRYPTION_LABEL))

    """
        A secret alone yields two different, validated keys with default algorithms.
    """
    def test_build_from_secret(self):

        material = build_key_material(secret=self.SECRET)

        self.assertEqual(self.ENC_KEY, material.encryption_key)
        self.assertEqual(self.SIG_KEY, material.signature_key)
        self.assertEqual("aes256", material.encryption_algorithm)
        self.assertEqual("sha256", material.signature_algorithm)
        self.assertIsNotNone(material.cipher)
        self.assertIsNotNone(material.signer)

    """
        Explicit keys are used as given; algorithm names are lower-cased.
    """
    def test_build_from_explicit_keys(self):

        enc, sig = os.urandom(16), os.urandom(64)
        material = build_key_material(encryption_key=enc, signature_key=sig,
                                      encryption_algorithm="AES128", signature_algorithm="SHA512-drop256")

        self.assertEqual(enc, material.encryption_key)
        self.assertEqual(sig, material.signature_key)
        self.assertEqual("aes128", material.encryption_algorithm)
        self.assertEqual("sha512-drop256", material.signature_algorithm)

    """
        Only one explicit key: the other comes from the secret.
    """
    def test_partial_keys_completed_from_secret(self):

        sig = os.urandom(32)
        material = build_key_material(secret=self.SECRET, signature_key=sig)

        self.assertEqual(self.ENC_KEY, material.encryption_key)
        self.assertEqual(sig, material.signature_key)

    """
        KeyMaterial is frozen and its repr hides the keys.
    """
    def test_key_material_is_immutable(self):

        material = build_key_material(secret=self.SECRET)

        with self.assertRaises(dataclasses.FrozenInstanceError):
            material.encryption_key = bytes(32)  # type: ignore[misc]

        self.assertNotIn(self.ENC_KEY.hex(), repr(material))
        self.assertIsInstance(material, KeyMaterial)

    """
        Caller buffers are copied, so mutating them later changes nothing.
    """
    def test_caller_buffers_are_copied(self):

        enc = bytearray(os.urandom(32))
        material = build_key_material(encryption_key=enc, signature_key=os.urandom(32))
        before = bytes(enc)

        enc[0] ^= 0xFF
        self.assertEqual(before, material.encryption_key)

    """
        Neither a secret nor a full key pair.
    """
    def test_missing_secret(self):

        self.assertConfigError(ApplicationCodes.MISSING_SECRET, build_key_material)
        self.assertConfigError(ApplicationCodes.MISSING_SECRET, build_key_material, encryption_key=os.urandom(32))
        self.assertConfigError(ApplicationCodes.MISSING_SECRET, build_key_material, secret=12345)

    """
        validate_keys(): every failure branch.
    """
    def test_validate_keys_failures(self):

        enc, sig = os.urandom(32), os.urandom(32)

        self.assertConfigError(ApplicationCodes.INVALID_KEY_TYPE, validate_keys, "not-bytes", sig, "aes256", "sha256")
        self.assertConfigError(ApplicationCodes.INVALID_KEY_TYPE, validate_keys, enc, "not-bytes", "aes256", "sha256")
        self.assertConfigError(ApplicationCodes.IDENTICAL_KEYS, validate_keys, enc, bytes(enc), "aes256", "sha256")
        self.assertConfigError(ApplicationCodes.UNSUPPORTED_ALGORITHM, validate_keys, enc, sig, "aes512", "sha256")
        self.assertConfigError(ApplicationCodes.UNSUPPORTED_ALGORITHM, validate_keys, enc, sig, "aes256", "sha1")
        self.assertConfigError(ApplicationCodes.INVALID_KEY_LENGTH, validate_keys, enc, sig, "aes128", "sha256")
        self.assertConfigError(ApplicationCodes.INVALID_KEY_LENGTH, validate_keys, enc, sig, "aes256", "sha384")

    """
        Signature keys longer than the minimum are fine.
    """
    def test_validate_keys_accepts_long_signature_key(self):

        validate_keys(os.urandom(24), os.urandom(100), "aes192", "sha512")

    """
        Derived keys are 32 bytes, so they cannot drive aes128 or sha512.
    """
    def test_derived_keys_require_matching_algorithms(self):

        self.assertConfigError(ApplicationCodes.INVALID_KEY_LENGTH, build_key_material, secret=self.SECRET, encryption_algorithm="aes128")
        self.assertConfigError(ApplicationCodes.INVALID_KEY_LENGTH, build_key_material, secret=self.SECRET, signature_algorithm="sha512")


if __name__ == "__main__":
    unittest.main()
