#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: key_manager.py

    Description:
        Derives and validates the key material for session tokens. Two
        independent keys are derived from one secret with HMAC-SHA256 and
        distinct labels, or supplied explicitly. Validation runs once, when
        the configuration is built, and produces an immutable KeyMaterial
        that is shared read-only by every request.
"""


import typing
from dataclasses import dataclass, field
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import hmac as crypto_hmac
from client_sessions.handlers.error_handler import ConfigurationError, ClientSessionError, ApplicationCodes
from client_sessions.encryption.cipher_manager import CipherManager
from client_sessions.encryption.signature_manager import SignatureManager, constant_time_equals
import client_sessions.constants as CONSTANTS


Secret = typing.Union[str, bytes, bytearray]



"""
    Immutable, validated key material.

    encryption_key       : Exact-length AES key
    signature_key        : HMAC key, at least the algorithm's minimum length
    encryption_algorithm : Lower-cased cipher name
    signature_algorithm  : Lower-cased HMAC name (optionally -dropN)
    cipher / signer      : Managers bound to the keys above
"""
@dataclass(frozen=True)
class KeyMaterial:

    encryption_key: bytes = field(repr=False)
    signature_key: bytes = field(repr=False)
    encryption_algorithm: str = CONSTANTS._DEFAULT_ENCRYPTION_ALGORITHM
    signature_algorithm: str = CONSTANTS._DEFAULT_SIGNATURE_ALGORITHM
    cipher: CipherManager = field(default=None, repr=False, compare=False)
    signer: SignatureManager = field(default=None, repr=False, compare=False)



"""
    Derive a fixed-length key from a secret and a domain-separation label.

    @param secret (str | bytes): Master secret; text is UTF-8 encoded.
    @param label (bytes): Label unique to the key's purpose.
    @return bytes: 32-byte HMAC-SHA256(secret, label).
"""
def derive_key(secret: Secret, label: bytes) -> bytes:

    if isinstance(secret, str):
        secret = secret.encode("utf-8")

    mac = crypto_hmac.HMAC(bytes(secret), hashes.SHA256())
    mac.update(label)
    return mac.finalize()



"""
    Check key types, key independence, algorithm names, and key lengths.

    @param encryption_key (bytes): Candidate AES key.
    @param signature_key (bytes): Candidate HMAC key.
    @param encryption_algorithm (str): Cipher name.
    @param signature_algorithm (str): HMAC name.

    @require Called once at configuration time
    @ensures Raises ConfigurationError on the first violated constraint.
"""
def validate_keys(encryption_key: typing.Any, signature_key: typing.Any, encryption_algorithm: typing.Any, signature_algorithm: typing.Any) -> None:

    if not isinstance(encryption_key, (bytes, bytearray)):
        raise ConfigurationError(ApplicationCodes.INVALID_KEY_TYPE, "encryptionKey must be bytes", "encryption_key")

    if not isinstance(signature_key, (bytes, bytearray)):
        raise ConfigurationError(ApplicationCodes.INVALID_KEY_TYPE, "signatureKey must be bytes", "signature_key")

    if constant_time_equals(encryption_key, signature_key):
        raise ConfigurationError(ApplicationCodes.IDENTICAL_KEYS, "Encryption and Signature keys must be different", "signature_key")

    if not isinstance(encryption_algorithm, str) or encryption_algorithm.lower() not in CONSTANTS._ENCRYPTION_ALGORITHMS:
        raise ConfigurationError(ApplicationCodes.UNSUPPORTED_ALGORITHM,
                                 "invalid encryptionAlgorithm, supported are: " + ", ".join(CONSTANTS._ENCRYPTION_ALGORITHMS),
                                 "encryption_algorithm")

    required = CONSTANTS._ENCRYPTION_ALGORITHMS[encryption_algorithm.lower()]
    if len(encryption_key) != required:
        raise ConfigurationError(ApplicationCodes.INVALID_KEY_LENGTH,
                                 f"Encryption Key for {encryption_algorithm.lower()} must be exactly {required} bytes ({required * 8} bits)",
                                 "encryption_key")

    if not isinstance(signature_algorithm, str) or signature_algorithm.lower() not in CONSTANTS._SIGNATURE_ALGORITHMS:
        raise ConfigurationError(ApplicationCodes.UNSUPPORTED_ALGORITHM,
                                 "invalid signatureAlgorithm, supported are: " + ", ".join(CONSTANTS._SIGNATURE_ALGORITHMS),
                                 "signature_algorithm")

    minimum = CONSTANTS._SIGNATURE_ALGORITHMS[signature_algorithm.lower()]
    if len(signature_key) < minimum:
        raise ConfigurationError(ApplicationCodes.INVALID_KEY_LENGTH,
                                 f"Signature Key for {signature_algorithm.lower()} must be at least {minimum} bytes ({minimum * 8} bits)",
                                 "signature_key")



"""
    Build validated KeyMaterial from a secret and/or explicit keys.

    @param secret (str | bytes | None): Master secret; derives whichever key was not supplied.
    @param encryption_key (bytes | None): Explicit AES key.
    @param signature_key (bytes | None): Explicit HMAC key.
    @param encryption_algorithm (str | None): Defaults to aes256.
    @param signature_algorithm (str | None): Defaults to sha256.

    @require secret, or both explicit keys
    @return KeyMaterial: Frozen, validated key material with bound managers.
"""
def build_key_material(secret: typing.Optional[Secret] = None,
                       encryption_key: typing.Optional[bytes] = None,
                       signature_key: typing.Optional[bytes] = None,
                       encryption_algorithm: typing.Optional[str] = None,
                       signature_algorithm: typing.Optional[str] = None) -> KeyMaterial:
    try:
        if not (secret or (encryption_key and signature_key)):
            raise ConfigurationError(ApplicationCodes.MISSING_SECRET,
                                     "cannot set up sessions without a secret or encryptionKey/signatureKey pair",
                                     "secret")

        if secret is not None and not isinstance(secret, (str, bytes, bytearray)):
            raise ConfigurationError(ApplicationCodes.MISSING_SECRET, "secret must be a string or bytes", "secret")

        if not encryption_key:
            encryption_key = derive_key(secret, CONSTANTS._KDF_ENCRYPTION_LABEL)

        if not signature_key:
            signature_key = derive_key(secret, CONSTANTS._KDF_SIGNATURE_LABEL)

        encryption_algorithm = encryption_algorithm or CONSTANTS._DEFAULT_ENCRYPTION_ALGORITHM
        signature_algorithm = signature_algorithm or CONSTANTS._DEFAULT_SIGNATURE_ALGORITHM

        validate_keys(encryption_key, signature_key, encryption_algorithm, signature_algorithm)

        # Freeze copies so later mutation of caller buffers has no effect
        encryption_key = bytes(encryption_key)
        signature_key = bytes(signature_key)
        encryption_algorithm = encryption_algorithm.lower()
        signature_algorithm = signature_algorithm.lower()

        return KeyMaterial(
            encryption_key=encryption_key,
            signature_key=signature_key,
            encryption_algorithm=encryption_algorithm,
            signature_algorithm=signature_algorithm,
            cipher=CipherManager(encryption_algorithm, encryption_key),
            signer=SignatureManager(signature_algorithm, signature_key),
        )

    except ClientSessionError:
        raise
    except Exception as e:
        raise ConfigurationError(ApplicationCodes.MISSING_SECRET, f"Failed to set up session keys: {e}", "secret")
