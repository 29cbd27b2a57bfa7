#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: codec_handler.py

    Description:
        Encrypt-then-MAC codec for session tokens. A token is

            B64(iv) . B64(ciphertext) . createdAt . duration . B64(mac)

        where B64 is unpadded base64url, createdAt/duration are decimal
        milliseconds, the plaintext is "<cookieName>=<JSON content>", and the
        MAC covers iv, ciphertext, createdAt and duration. Decoding verifies
        the MAC in constant time before anything is decrypted.

        decode() never raises for attacker-controlled input; it returns None.
        unbox() raises AuthenticationFailure instead, so callers that want the
        rejection reason (for the audit log) can have it. Only configuration
        problems raise ConfigurationError.
"""


import typing
from dataclasses import dataclass
from client_sessions.handlers.error_handler import AuthenticationFailure, ApplicationCodes
from client_sessions.handlers.config_handler import SessionConfig
from client_sessions.encryption.cipher_manager import CipherManager
from client_sessions.encryption.signature_manager import zero_buffer
import client_sessions.constants as CONSTANTS
import client_sessions.handlers.sanitization_validation as VALIDATION


Buffer = typing.Union[bytes, bytearray]



"""
    Result of a successful decode.

    content    : Session content mapping
    created_at : Creation instant in ms since the epoch
    duration   : Validity window in ms
"""
@dataclass
class DecodedToken:

    content: dict
    created_at: int
    duration: int



"""
    Byte strings the token MAC covers, in order: iv "." ciphertext "." createdAt "." duration.
"""
def _mac_parts(iv: Buffer, ciphertext: Buffer, created_at: int, duration: int) -> typing.Tuple[Buffer, ...]:

    sep = CONSTANTS._TOKEN_FIELD_SEP.encode("ascii")
    return (iv, sep, ciphertext, sep, str(created_at).encode("ascii"), sep, str(duration).encode("ascii"))



"""
    Compute the token MAC.

    @param config (SessionConfig): Supplies the signature algorithm and key.
    @param iv (bytes): 16-byte IV.
    @param ciphertext (bytes): Ciphertext.
    @param created_at (int): Creation instant (ms).
    @param duration (int): Validity window (ms).
    @return bytearray: MAC over iv "." ciphertext "." createdAt "." duration.
"""
def compute_hmac(config: SessionConfig, iv: Buffer, ciphertext: Buffer, created_at: int, duration: int) -> bytearray:

    return config.key_material.signer.sign(*_mac_parts(iv, ciphertext, created_at, duration))



"""
    Encode session content into a signed, encrypted token.

    @param config (SessionConfig): Cookie name and key material.
    @param content (Mapping): JSON-serializable session content.
    @param duration (int | None): Validity window in ms, 24h when None.
    @param created_at (int | None): Creation instant in ms, now when None.
    @return str: Token in the five-field wire format.
    @ensures A fresh IV is used per call and every intermediate buffer is cleared.
"""
def encode(config: SessionConfig, content: typing.Mapping[str, typing.Any], duration: typing.Optional[int] = None, created_at: typing.Optional[int] = None) -> str:

    # Config objects are validated at build time, but a hand-made one may not be
    VALIDATION.validate_cookie_name(config.cookie_name)

    duration = CONSTANTS._DEFAULT_DURATION_MS if duration is None else int(duration)
    created_at = VALIDATION.current_time_millis() if created_at is None else int(created_at)

    iv = CipherManager.generate_iv()
    plaintext = bytearray((config.cookie_name + CONSTANTS._COOKIE_NAME_SEP + VALIDATION.encode_content_to_json(content)).encode("utf-8"))
    ciphertext = None
    mac = None

    try:
        ciphertext = config.key_material.cipher.encrypt(iv, plaintext)
        zero_buffer(plaintext)

        mac = compute_hmac(config, iv, ciphertext, created_at, duration)

        return CONSTANTS._TOKEN_FIELD_SEP.join([
            VALIDATION.encode_bytes_to_base64url(iv),
            VALIDATION.encode_bytes_to_base64url(ciphertext),
            str(created_at),
            str(duration),
            VALIDATION.encode_bytes_to_base64url(mac),
        ])

    finally:
        zero_buffer(iv)
        zero_buffer(plaintext)
        zero_buffer(ciphertext)
        zero_buffer(mac)



"""
    Decode and authenticate a token, raising on rejection.

    @param config (SessionConfig): Cookie name and key material.
    @param token (str): Incoming cookie value.
    @return DecodedToken
    @ensures Raises AuthenticationFailure for any malformed, forged, or foreign token;
             the MAC is checked before decryption; sensitive buffers are cleared.
"""
def unbox(config: SessionConfig, token: typing.Any) -> DecodedToken:

    VALIDATION.validate_cookie_name(config.cookie_name)

    if not isinstance(token, str):
        raise AuthenticationFailure(ApplicationCodes.MALFORMED_TOKEN, "Token must be text", "token")

    components = token.split(CONSTANTS._TOKEN_FIELD_SEP)
    if len(components) != CONSTANTS._TOKEN_FIELD_COUNT:
        raise AuthenticationFailure(ApplicationCodes.MALFORMED_TOKEN, f"Token must have {CONSTANTS._TOKEN_FIELD_COUNT} fields", "token")

    iv = ciphertext = mac = plaintext = None

    try:
        iv = VALIDATION.decode_base64url_to_bytes("iv", components[0])
        ciphertext = VALIDATION.decode_base64url_to_bytes("ciphertext", components[1])
        mac = VALIDATION.decode_base64url_to_bytes("mac", components[4])

        created_at = VALIDATION.parse_decimal_field("created_at", components[2])
        duration = VALIDATION.parse_decimal_field("duration", components[3])

        if len(iv) != CONSTANTS._IV_LEN_BYTES:
            raise AuthenticationFailure(ApplicationCodes.INVALID_IV_LENGTH, f"IV must be {CONSTANTS._IV_LEN_BYTES} bytes", "iv")

        # Authenticate before decrypting
        signer = config.key_material.signer
        if len(mac) != signer.mac_length:
            raise AuthenticationFailure(ApplicationCodes.MAC_MISMATCH, f"Token signature must be {signer.mac_length} bytes", "mac")

        if not signer.verify(mac, *_mac_parts(iv, ciphertext, created_at, duration)):
            raise AuthenticationFailure(ApplicationCodes.MAC_MISMATCH, "Token signature does not verify", "mac")

        plaintext = config.key_material.cipher.decrypt(iv, ciphertext)

        try:
            text = plaintext.decode("utf-8")
        except UnicodeDecodeError:
            raise AuthenticationFailure(ApplicationCodes.DECRYPTION_FAILED, "Plaintext is not UTF-8", "ciphertext")

        cookie_name, sep, body = text.partition(CONSTANTS._COOKIE_NAME_SEP)
        if not sep or cookie_name != config.cookie_name:
            raise AuthenticationFailure(ApplicationCodes.COOKIE_NAME_MISMATCH, "Token was issued for a different cookie", "cookie_name")

        return DecodedToken(content=VALIDATION.decode_json_to_content(body), created_at=created_at, duration=duration)

    except AuthenticationFailure:
        raise
    except Exception:
        raise AuthenticationFailure(ApplicationCodes.MALFORMED_TOKEN, "Token could not be decoded", "token")

    finally:
        zero_buffer(iv)
        zero_buffer(ciphertext)
        zero_buffer(mac)
        zero_buffer(plaintext)



"""
    Decode and authenticate a token.

    @return DecodedToken | None: None for any token that fails authentication.
"""
def decode(config: SessionConfig, token: typing.Any) -> typing.Optional[DecodedToken]:
    try:
        return unbox(config, token)
    except AuthenticationFailure:
        return None
