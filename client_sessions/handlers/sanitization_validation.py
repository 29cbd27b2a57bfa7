#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: sanitization_validation.py

    Description:
        Encoding, decoding, parsing, and field-level validation helpers shared
        by the configuration, codec, and session layers. Includes unpadded
        Base64URL conversions, compact and canonical JSON serialization,
        decimal timestamp parsing, cookie-name validation, duration
        validation, and the millisecond wall clock used for createdAt.

        Token-facing helpers raise AuthenticationFailure so the codec can turn
        any malformed input into "no valid session"; configuration-facing
        helpers raise ConfigurationError.
"""

import base64
import binascii
import json
import time
import typing

from client_sessions.handlers.error_handler import AuthenticationFailure, ConfigurationError, SessionMisuseError, ApplicationCodes
import client_sessions.constants as CONSTANTS


####################################################################################################
#                                   Base64URL Encoding / Decoding
####################################################################################################

"""
    Convert a Base64URL string into raw bytes.

    @param field_name (str): Logical field name for context in error messages.
    @param b64u_text (str): Unpadded Base64URL text.
    @return bytearray: Decoded bytes in a mutable buffer so callers can clear it.
    @ensures Padding is restored and invalid input raises AuthenticationFailure.
"""
def decode_base64url_to_bytes(field_name: str, b64u_text: typing.Any) -> bytearray:

    if not isinstance(b64u_text, str) or not CONSTANTS._BASE64URL_RX.match(b64u_text):
        raise AuthenticationFailure(ApplicationCodes.INVALID_BASE64URL, f"{field_name} must be Base64URL", field_name)

    # A single leftover character can never be valid base64
    if len(b64u_text) % 4 == 1:
        raise AuthenticationFailure(ApplicationCodes.INVALID_BASE64URL, f"Illegal base64url length for {field_name}", field_name)

    padded = b64u_text + "=" * ((4 - len(b64u_text) % 4) % 4)

    try:
        decoded = bytearray(base64.urlsafe_b64decode(padded))
    except (binascii.Error, ValueError):
        raise AuthenticationFailure(ApplicationCodes.INVALID_BASE64URL, f"Invalid base64url for {field_name}", field_name)

    # Only the canonical spelling is accepted; unused trailing bits must be zero
    if encode_bytes_to_base64url(decoded) != b64u_text:
        raise AuthenticationFailure(ApplicationCodes.INVALID_BASE64URL, f"Non-canonical base64url for {field_name}", field_name)

    return decoded



"""
    Convert raw bytes into a Base64URL string without padding.

    @param raw (bytes): Bytes to encode.
    @return str: Base64URL-encoded ASCII string without '=' padding.
"""
def encode_bytes_to_base64url(raw: typing.Union[bytes, bytearray]) -> str:
    return base64.urlsafe_b64encode(bytes(raw)).decode("ascii").rstrip("=")



####################################################################################################
#                                   JSON Conversions
####################################################################################################

"""
    Serialize session content the way it travels inside the plaintext.

    @param content (dict): JSON-serializable mapping.
    @return str: Compact JSON text (no whitespace, non-ASCII kept as-is).
    @ensures Raises SessionMisuseError if content cannot be serialized.
"""
def encode_content_to_json(content: typing.Mapping[str, typing.Any]) -> str:
    try:
        return json.dumps(content, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise SessionMisuseError(ApplicationCodes.UNSERIALIZABLE_CONTENT, f"Session content is not JSON serializable: {e}", "content")


"""
    Serialization used only for dirty detection. Key order does not matter.
"""
def canonical_content_json(content: typing.Mapping[str, typing.Any]) -> str:
    try:
        return json.dumps(content, separators=(",", ":"), sort_keys=True)
    except (TypeError, ValueError) as e:
        raise SessionMisuseError(ApplicationCodes.UNSERIALIZABLE_CONTENT, f"Session content is not JSON serializable: {e}", "content")


"""
    Parse the JSON body of a decrypted token.

    @param text (str): JSON text following the cookie-name prefix.
    @return dict: Decoded session content.
    @ensures Anything other than a JSON object raises AuthenticationFailure.
"""
def decode_json_to_content(text: str) -> dict:
    try:
        content = json.loads(text)
    except ValueError:
        raise AuthenticationFailure(ApplicationCodes.MALFORMED_JSON, "Session body is not valid JSON", "content")

    if not isinstance(content, dict):
        raise AuthenticationFailure(ApplicationCodes.MALFORMED_JSON, "Session body must be a JSON object", "content")

    return content



####################################################################################################
#                                   Integers / Time
####################################################################################################

"""
    Parse a non-negative decimal integer field of a token.
"""
def parse_decimal_field(field_name: str, value: str) -> int:
    if not isinstance(value, str) or not CONSTANTS._DECIMAL_RX.match(value):
        raise AuthenticationFailure(ApplicationCodes.INVALID_TIMESTAMP, f"{field_name} must be a non-negative decimal integer", field_name)
    return int(value)


"""
    Function: Current wall-clock time in integer milliseconds since the epoch.
"""
def current_time_millis() -> int:
    return int(time.time() * 1000)



####################################################################################################
#                                   Configuration Validators
####################################################################################################

"""
    Function: Validate the cookie name bound into every token.

    @param value (Any): Configured cookie name.
    @require value must be a non-empty string without the '=' separator
    @ensures raises ConfigurationError otherwise
"""
def validate_cookie_name(value: typing.Any) -> None:
    if not isinstance(value, str) or not value:
        raise ConfigurationError(ApplicationCodes.INVALID_COOKIE_NAME, "cookieName option required", "cookie_name")

    if CONSTANTS._COOKIE_NAME_SEP in value:
        raise ConfigurationError(ApplicationCodes.INVALID_COOKIE_NAME, f"cookieName cannot include \"{CONSTANTS._COOKIE_NAME_SEP}\"", "cookie_name")


"""
    Function: Validate a millisecond duration option.

    @param value (Any): Candidate duration.
    @param field_name (str): Option name for the error message.
    @ensures raises ConfigurationError unless value is a non-negative int (bool excluded)
"""
def validate_duration(value: typing.Any, field_name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigurationError(ApplicationCodes.INVALID_DURATION, f"{field_name} must be a non-negative integer number of milliseconds", field_name)


"""
    Function: Interpret a configuration flag that may arrive as text (environment / app.config).
"""
def coerce_to_bool(value: typing.Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


"""
    Function: Interpret an integer option that may arrive as text.

    @ensures raises ConfigurationError for non-integer text
"""
def coerce_to_int(value: typing.Any, field_name: str) -> int:
    if isinstance(value, str):
        try:
            return int(value.strip(), 10)
        except ValueError:
            raise ConfigurationError(ApplicationCodes.INVALID_DURATION, f"{field_name} must be an integer", field_name)
    return value
