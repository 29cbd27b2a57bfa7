#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: config_handler.py

    Description:
        Builds the immutable session configuration. All defaults are applied
        and all constraints checked here, once, so that request code only
        ever reads from a frozen SessionConfig. Values can be given as keyword
        arguments or read from a Flask app.config / environment mapping using
        the CLIENT_SESSIONS_ prefix.
"""


import typing
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from client_sessions.handlers.error_handler import ConfigurationError, ClientSessionError, ApplicationCodes
from client_sessions.encryption.key_manager import KeyMaterial, build_key_material
import client_sessions.constants as CONSTANTS
import client_sessions.handlers.sanitization_validation as VALIDATION


####################################################################################################
# Config Objects
####################################################################################################

"""
    Cookie attributes handed to the transport.

    http_only : Hide the cookie from client-side scripts
    secure    : Require a confidentiality-protected transport
    max_age   : Fixed client-side lifetime in milliseconds (exclusive with ephemeral)
    ephemeral : Omit the expiry so the browser drops the cookie with its own session
    path / domain / same_site : Passed through verbatim
"""
@dataclass(frozen=True)
class CookieOptions:

    http_only: bool = True
    secure: bool = False
    max_age: typing.Optional[int] = None
    ephemeral: bool = False
    path: typing.Optional[str] = None
    domain: typing.Optional[str] = None
    same_site: typing.Optional[str] = None


"""
    Everything a session needs, validated and frozen.
"""
@dataclass(frozen=True)
class SessionConfig:

    key_material: KeyMaterial = field(repr=False)
    cookie_name: str = CONSTANTS._DEFAULT_COOKIE_NAME
    request_key: str = CONSTANTS._DEFAULT_COOKIE_NAME
    duration: int = CONSTANTS._DEFAULT_DURATION_MS
    active_duration: int = CONSTANTS._DEFAULT_ACTIVE_DURATION_MS
    cookie: CookieOptions = field(default_factory=CookieOptions)



####################################################################################################
# Builders
####################################################################################################

"""
    Convert a cookie option mapping (or CookieOptions) into CookieOptions.

    @param cookie (Mapping | CookieOptions | None)
    @return CookieOptions
    @ensures Unknown option names raise ConfigurationError
"""
def build_cookie_options(cookie: typing.Any = None) -> CookieOptions:

    if cookie is None:
        return CookieOptions()

    if isinstance(cookie, CookieOptions):
        options = cookie
    elif isinstance(cookie, Mapping):
        allowed = {f.name for f in fields(CookieOptions)}
        unknown = set(cookie) - allowed
        if unknown:
            raise ConfigurationError(ApplicationCodes.INVALID_COOKIE_OPTIONS, f"Unknown cookie options: {', '.join(sorted(unknown))}", "cookie")

        # An explicit None keeps the default, matching an omitted option
        options = CookieOptions(**{k: v for k, v in cookie.items() if v is not None})
    else:
        raise ConfigurationError(ApplicationCodes.INVALID_COOKIE_OPTIONS, "cookie options must be a mapping", "cookie")

    if options.max_age is not None:
        VALIDATION.validate_duration(options.max_age, "max_age")

    return options



"""
    Build a SessionConfig from keyword options.

    @param secret (str | bytes): Master secret for key derivation.
    @param encryption_key / signature_key (bytes): Explicit keys (either may override derivation).
    @param cookie_name (str): Cookie name, bound into every token; must not contain '='.
    @param request_key (str): Name the session is exposed under; defaults to cookie_name.
    @param duration (int): Validity window in ms.
    @param active_duration (int): Sliding renewal window in ms; 0 disables renewal.
    @param encryption_algorithm / signature_algorithm (str): Algorithm names.
    @param cookie (Mapping | CookieOptions): Cookie attributes.

    @return SessionConfig
    @ensures Raises ConfigurationError for any invalid option.
"""
def build_session_config(secret: typing.Any = None,
                         encryption_key: typing.Optional[bytes] = None,
                         signature_key: typing.Optional[bytes] = None,
                         cookie_name: typing.Optional[str] = None,
                         request_key: typing.Optional[str] = None,
                         duration: typing.Optional[int] = None,
                         active_duration: typing.Optional[int] = None,
                         encryption_algorithm: typing.Optional[str] = None,
                         signature_algorithm: typing.Optional[str] = None,
                         cookie: typing.Any = None) -> SessionConfig:
    try:
        cookie_name = CONSTANTS._DEFAULT_COOKIE_NAME if cookie_name is None else cookie_name
        VALIDATION.validate_cookie_name(cookie_name)

        duration = CONSTANTS._DEFAULT_DURATION_MS if duration is None else duration
        VALIDATION.validate_duration(duration, "duration")

        active_duration = CONSTANTS._DEFAULT_ACTIVE_DURATION_MS if active_duration is None else active_duration
        VALIDATION.validate_duration(active_duration, "active_duration")

        request_key = request_key or cookie_name
        if not isinstance(request_key, str):
            raise ConfigurationError(ApplicationCodes.INVALID_COOKIE_NAME, "requestKey must be a string", "request_key")

        key_material = build_key_material(secret=secret,
                                          encryption_key=encryption_key,
                                          signature_key=signature_key,
                                          encryption_algorithm=encryption_algorithm,
                                          signature_algorithm=signature_algorithm)

        return SessionConfig(key_material=key_material,
                             cookie_name=cookie_name,
                             request_key=request_key,
                             duration=duration,
                             active_duration=active_duration,
                             cookie=build_cookie_options(cookie))

    except ClientSessionError:
        raise
    except Exception as e:
        raise ConfigurationError(ApplicationCodes.MISSING_OPTIONS, f"Invalid session configuration: {e}", "config")



"""
    Build a SessionConfig from a flat mapping such as Flask's app.config or os.environ.

    @param mapping (Mapping): Source of CLIENT_SESSIONS_* keys.
    @param prefix (str): Key prefix.
    @return SessionConfig
    @ensures Text values are coerced; keys are base64url-decoded.
"""
def load_config_from_mapping(mapping: typing.Mapping[str, typing.Any], prefix: str = CONSTANTS._CONFIG_PREFIX) -> SessionConfig:

    def get(name: str, default: typing.Any = None) -> typing.Any:
        return mapping.get(prefix + name, default)

    def get_key(name: str) -> typing.Optional[bytes]:
        value = get(name)
        if value is None or isinstance(value, (bytes, bytearray)):
            return value
        try:
            return bytes(VALIDATION.decode_base64url_to_bytes(name.lower(), value))
        except ClientSessionError:
            raise ConfigurationError(ApplicationCodes.INVALID_KEY_TYPE, f"{prefix + name} must be base64url text", name.lower())

    def get_int(name: str) -> typing.Optional[int]:
        value = get(name)
        return None if value is None else VALIDATION.coerce_to_int(value, name.lower())

    def get_bool(name: str, default: bool) -> bool:
        value = get(name)
        return default if value is None else VALIDATION.coerce_to_bool(value)

    cookie = {
        "http_only": get_bool("COOKIE_HTTP_ONLY", True),
        "secure": get_bool("COOKIE_SECURE", False),
        "max_age": get_int("COOKIE_MAX_AGE"),
        "ephemeral": get_bool("COOKIE_EPHEMERAL", False),
        "path": get("COOKIE_PATH"),
        "domain": get("COOKIE_DOMAIN"),
        "same_site": get("COOKIE_SAMESITE"),
    }

    return build_session_config(secret=get("SECRET"),
                                encryption_key=get_key("ENCRYPTION_KEY"),
                                signature_key=get_key("SIGNATURE_KEY"),
                                cookie_name=get("COOKIE_NAME"),
                                request_key=get("REQUEST_KEY"),
                                duration=get_int("DURATION"),
                                active_duration=get_int("ACTIVE_DURATION"),
                                encryption_algorithm=get("ENCRYPTION_ALGORITHM"),
                                signature_algorithm=get("SIGNATURE_ALGORITHM"),
                                cookie=cookie)
