#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: cookie_handler.py

    Description:
        The cookie-transport contract consumed by the session layer and the
        pure function that turns a session's lifetime state into the
        attributes of the outgoing cookie.
"""


import typing
from datetime import datetime, timezone
from client_sessions.handlers.config_handler import CookieOptions
import client_sessions.constants as CONSTANTS


####################################################################################################
# Transport Contract
####################################################################################################

"""
    Reads and writes cookies for one request/response cycle.

    get(name)                     -> incoming cookie value or None
    set(name, value, attributes)  -> queue an outgoing cookie
    is_secure()                   -> True when the connection is confidentiality-protected
    proxy_secure                  -> explicit override for TLS terminated at a trusted proxy
"""
class CookieTransport(typing.Protocol):

    proxy_secure: bool

    def get(self, name: str) -> typing.Optional[str]: ...

    def set(self, name: str, value: str, attributes: typing.Dict[str, typing.Any]) -> None: ...

    def is_secure(self) -> bool: ...



"""
    Whether a transport may carry a secure cookie.
"""
def transport_is_secure(transport: CookieTransport) -> bool:
    return bool(transport.is_secure() or getattr(transport, "proxy_secure", False))



"""
    Convert epoch milliseconds to an aware UTC datetime, clamped to the last representable instant.
"""
def millis_to_datetime(millis: int) -> datetime:
    if millis >= CONSTANTS._MAX_EXPIRES_MS:
        return datetime.max.replace(tzinfo=timezone.utc)
    return datetime.fromtimestamp(millis / 1000.0, tz=timezone.utc)



####################################################################################################
# Cookie Attributes
####################################################################################################

"""
    Compute the attributes of the outgoing session cookie.

    @param options (CookieOptions): Configured cookie options.
    @param expires (datetime | None): The session's current expiry; None for an ephemeral cookie.
    @return dict: expires, max_age (seconds, only with a configured maxAge), httponly,
                  secure, path, domain, samesite. Unset pass-through attributes are omitted.
"""
def cookie_attributes(options: CookieOptions, expires: typing.Optional[datetime]) -> typing.Dict[str, typing.Any]:

    attributes: typing.Dict[str, typing.Any] = {
        "expires": expires,
        "httponly": options.http_only,
        "secure": options.secure,
    }

    if options.max_age is not None:
        # Round up so a sub-second maxAge does not expire the cookie at once
        attributes["max_age"] = -(-options.max_age // 1000)

    if options.path is not None:
        attributes["path"] = options.path

    if options.domain is not None:
        attributes["domain"] = options.domain

    if options.same_site is not None:
        attributes["samesite"] = options.same_site

    return attributes
