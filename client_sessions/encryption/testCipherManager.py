#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: testCipherManager.py

    Description:
        Test suite for CipherManager (AES-CBC + PKCS7). Verifies IV generation,
        a known-answer ciphertext, key-length enforcement per algorithm, and
        that undecryptable input surfaces as AuthenticationFailure.
"""

import os
import unittest

from client_sessions.encryption.cipher_manager import CipherManager
from client_sessions.handlers.error_handler import ConfigurationError, AuthenticationFailure, ApplicationCodes


class TestCipherManager(unittest.TestCase):

    # HMAC-SHA256("yo", "cookiesession-encryption")
    KEY = bytes.fromhex("8e3d6df7d62c2b2548e7afc5e73902f66e24b183e3aa5a3f5fb040c1d48aac82")
    IV = bytes(range(16))
    PLAINTEXT = b'session={"foo":"bar","n":[1,2,3]}'
    CIPHERTEXT = bytes.fromhex("dd80d2b1fc0933115102b9ccf28589cfed8c02a5037f8201aaac7c0e97db"
                               "a75777487b16ea086fe382e64e6b6c71568f")

    def setUp(self) -> None:
        self.manager = CipherManager("aes256", self.KEY)

    """
        generate_iv() returns 16 fresh random bytes in a mutable buffer.
    """
    def test_generate_iv_properties(self):

        iv1 = CipherManager.generate_iv()
        iv2 = CipherManager.generate_iv()

        self.assertIsInstance(iv1, bytearray)
        self.assertEqual(16, len(iv1))
        self.assertEqual(16, len(iv2))
        self.assertNotEqual(iv1, iv2)

    """
        AES-256-CBC matches an independently computed ciphertext.
    """
    def test_encrypt_known_answer(self):

        self.assertEqual(self.CIPHERTEXT, bytes(self.manager.encrypt(self.IV, self.PLAINTEXT)))

    """
        decrypt() reverses encrypt() for every key size.
    """
    def test_round_trip_all_key_sizes(self):

        for algorithm, size in (("aes128", 16), ("aes192", 24), ("aes256", 32)):
            with self.subTest(algorithm=algorithm):
                manager = CipherManager(algorithm, os.urandom(size))
                iv = CipherManager.generate_iv()

                ciphertext = manager.encrypt(iv, b"x" * 33)

                self.assertEqual(0, len(ciphertext) % 16)
                self.assertEqual(b"x" * 33, bytes(manager.decrypt(iv, ciphertext)))

    """
        Key length must match the algorithm exactly.
    """
    def test_key_length_enforced(self):

        for algorithm, bad_len in (("aes128", 32), ("aes192", 16), ("aes256", 31)):
            with self.subTest(algorithm=algorithm):
                with self.assertRaises(ConfigurationError) as cm:
                    CipherManager(algorithm, os.urandom(bad_len))

                self.assertEqual(ApplicationCodes.INVALID_KEY_LENGTH, cm.exception.application_code)

    """
        Unknown cipher names are rejected.
    """
    def test_unknown_algorithm_rejected(self):

        with self.assertRaises(ConfigurationError) as cm:
            CipherManager("des", os.urandom(8))

        self.assertEqual(ApplicationCodes.UNSUPPORTED_ALGORITHM, cm.exception.application_code)

    """
        Misaligned ciphertext cannot be decrypted.
    """
    def test_decrypt_rejects_misaligned_ciphertext(self):

        with self.assertRaises(AuthenticationFailure) as cm:
            self.manager.decrypt(self.IV, self.CIPHERTEXT[:-1])

        self.assertEqual(ApplicationCodes.DECRYPTION_FAILED, cm.exception.application_code)


if __name__ == "__main__":
    unittest.main()
