#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: signature_manager.py

    Description:
        HMAC signing for session tokens. Supports the sha256/sha384/sha512
        digests and their "-dropN" variants, which keep only the leading N
        bits of the digest. Provides constant-time comparison and in-place
        zeroing of buffers that held secret-derived material.
"""


import hmac
import typing
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import hmac as crypto_hmac
from client_sessions.handlers.error_handler import ConfigurationError, ApplicationCodes
import client_sessions.constants as CONSTANTS


Buffer = typing.Union[bytes, bytearray]

# Base digest name -> cryptography hash class
_DIGESTS = {
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}



"""
    Overwrite a mutable buffer with zeros.

    @param buf (bytearray | None): Buffer to clear; immutable or missing buffers are ignored.
    @return The same buffer, now all zeros.
"""
def zero_buffer(buf: typing.Optional[Buffer]) -> typing.Optional[Buffer]:
    if isinstance(buf, bytearray):
        for i in range(len(buf)):
            buf[i] = 0
    return buf



"""
    Fixed-time equality over the full length of both inputs.

    A length mismatch returns False; lengths are public.
"""
def constant_time_equals(a: Buffer, b: Buffer) -> bool:
    return hmac.compare_digest(bytes(a), bytes(b))



class SignatureManager:

    """
        Bind a signature algorithm and key.

        @param algorithm (str): One of CONSTANTS._SIGNATURE_ALGORITHMS (case-insensitive).
        @param key (bytes): HMAC key; length is checked by the key manager.
        @ensures The base digest and truncation width are resolved once.
    """
    def __init__(self, algorithm: str, key: Buffer) -> None:

        algorithm = str(algorithm).lower()
        match = CONSTANTS._SIGNATURE_ALGORITHM_RX.match(algorithm)

        if algorithm not in CONSTANTS._SIGNATURE_ALGORITHMS or not match:
            raise ConfigurationError(ApplicationCodes.UNSUPPORTED_ALGORITHM,
                                     "invalid signatureAlgorithm, supported are: " + ", ".join(CONSTANTS._SIGNATURE_ALGORITHMS),
                                     "signature_algorithm")

        self.algorithm = algorithm
        self._digest = _DIGESTS[match.group(1)]
        self._truncate_bytes = int(match.group(2)) // 8 if match.group(2) else 0
        self._key = bytes(key)


    """
        Size of the MAC this manager emits, in bytes.
    """
    @property
    def mac_length(self) -> int:
        return self._truncate_bytes or self._digest.digest_size


    """
        Compute the MAC over the concatenation of parts.

        @param parts (bytes...): Byte strings fed to the HMAC in order.
        @return bytearray: Full digest, or its leading N/8 bytes for dropN algorithms.
        @ensures For dropN the full digest buffer is zeroed before returning.
    """
    def sign(self, *parts: Buffer) -> bytearray:

        mac = crypto_hmac.HMAC(self._key, self._digest())
        for part in parts:
            mac.update(bytes(part))

        result = bytearray(mac.finalize())

        if not self._truncate_bytes:
            return result

        truncated = bytearray(result[:self._truncate_bytes])
        zero_buffer(result)
        return truncated


    """
        Recompute the MAC and compare in constant time.
    """
    def verify(self, expected: Buffer, *parts: Buffer) -> bool:

        computed = self.sign(*parts)
        try:
            return constant_time_equals(computed, expected)
        finally:
            zero_buffer(computed)
