#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: cipher_manager.py

    Description:
        AES-CBC encryption with PKCS7 padding for session tokens. The key
        length selects AES-128/192/256. Every encryption call draws a fresh
        16-byte IV from the OS CSPRNG. Integrity is provided separately by
        the signature manager (encrypt-then-MAC), so decrypt() is only ever
        called on ciphertext whose MAC has already been verified.
"""


import os
import typing
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from client_sessions.handlers.error_handler import ConfigurationError, AuthenticationFailure, ApplicationCodes
from client_sessions.encryption.signature_manager import zero_buffer
import client_sessions.constants as CONSTANTS


Buffer = typing.Union[bytes, bytearray]



class CipherManager:

    """
        Bind an encryption algorithm and key.

        @param algorithm (str): One of CONSTANTS._ENCRYPTION_ALGORITHMS (case-insensitive).
        @param key (bytes): Key whose length must match the algorithm exactly.

        @ensures The manager is ready to encrypt and decrypt with AES-CBC.
    """
    def __init__(self, algorithm: str, key: Buffer) -> None:

        algorithm = str(algorithm).lower()
        required = CONSTANTS._ENCRYPTION_ALGORITHMS.get(algorithm)

        if not required:
            raise ConfigurationError(ApplicationCodes.UNSUPPORTED_ALGORITHM,
                                     "invalid encryptionAlgorithm, supported are: " + ", ".join(CONSTANTS._ENCRYPTION_ALGORITHMS),
                                     "encryption_algorithm")

        if len(key) != required:
            raise ConfigurationError(ApplicationCodes.INVALID_KEY_LENGTH,
                                     f"Encryption Key for {algorithm} must be exactly {required} bytes ({required * 8} bits)",
                                     "encryption_key")

        self.algorithm = algorithm
        self._key = bytes(key)



    """
        Generate a fresh IV using a CSPRNG.

        @return bytearray: 16 random bytes in a mutable buffer.
    """
    @staticmethod
    def generate_iv() -> bytearray:
        return bytearray(os.urandom(CONSTANTS._IV_LEN_BYTES))



    """
        Encrypt plaintext under the bound key and the given IV.

        @param iv (bytes): 16-byte IV.
        @param plaintext (bytes): Bytes to encrypt.
        @return bytearray: PKCS7-padded AES-CBC ciphertext.
        @ensures The padded plaintext buffer is zeroed after use.
    """
    def encrypt(self, iv: Buffer, plaintext: Buffer) -> bytearray:

        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = bytearray(padder.update(bytes(plaintext)) + padder.finalize())

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(bytes(iv))).encryptor()

        try:
            return bytearray(encryptor.update(bytes(padded)) + encryptor.finalize())
        finally:
            zero_buffer(padded)



    """
        Decrypt AES-CBC ciphertext and strip PKCS7 padding.

        @param iv (bytes): 16-byte IV.
        @param ciphertext (bytes): Block-aligned ciphertext.
        @return bytearray: Plaintext.
        @ensures Wrong block alignment or bad padding raises AuthenticationFailure.
    """
    def decrypt(self, iv: Buffer, ciphertext: Buffer) -> bytearray:

        padded = None
        try:
            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(bytes(iv))).decryptor()
            padded = bytearray(decryptor.update(bytes(ciphertext)) + decryptor.finalize())

            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            return bytearray(unpadder.update(bytes(padded)) + unpadder.finalize())

        except ValueError:
            raise AuthenticationFailure(ApplicationCodes.DECRYPTION_FAILED, "Ciphertext could not be decrypted", "ciphertext")

        finally:
            zero_buffer(padded)
