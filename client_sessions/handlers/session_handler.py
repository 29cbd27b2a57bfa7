#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: session_handler.py

    Description:
        Per-request session state for cookie-carried sessions. A ClientSession
        lazily decodes the incoming cookie on first content access, applies
        the sliding-expiration policy (expire, renew, or accept), tracks
        whether anything changed, and at response time encodes a fresh token
        through the codec only if the session is dirty. SessionProxy is the
        mapping-like handle application code works with.

        One ClientSession exists per cookie name per request and is never
        shared across requests or threads. The SessionConfig it reads from is
        frozen; nothing here writes to it.
"""


import typing
from collections.abc import Mapping, MutableMapping
from datetime import datetime
from client_sessions.handlers.error_handler import ConfigurationError, AuthenticationFailure, SessionMisuseError, ApplicationCodes
from client_sessions.handlers.config_handler import SessionConfig
from client_sessions.handlers.cookie_handler import CookieTransport, cookie_attributes, transport_is_secure, millis_to_datetime
from client_sessions.utilities.audit_log import AuditLog
import client_sessions.constants as CONSTANTS
import client_sessions.handlers.codec_handler as CODEC
import client_sessions.handlers.sanitization_validation as VALIDATION


Clock = typing.Callable[[], int]


####################################################################################################
# Session State
####################################################################################################

class ClientSession:

    """
        Initialize session state for one request.

        @param transport (CookieTransport): Cookie reader/writer for this request.
        @param config (SessionConfig): Frozen configuration shared by all requests.
        @param audit_log (AuditLog | None): Event sink; a default one is created when omitted.
        @param clock (callable | None): Returns the current time in ms since the epoch.

        @require not (config.cookie.ephemeral and config.cookie.max_age is not None)
        @require a secure cookie is only configured over a secure (or proxy-secure) transport
        @ensures Nothing is read from the transport until content is first accessed.
    """
    def __init__(self, transport: CookieTransport, config: SessionConfig, audit_log: typing.Optional[AuditLog] = None, clock: typing.Optional[Clock] = None) -> None:

        if not isinstance(config, SessionConfig):
            raise ConfigurationError(ApplicationCodes.MISSING_OPTIONS, "ClientSession requires a SessionConfig", "config")

        if config.cookie.ephemeral and config.cookie.max_age is not None:
            raise ConfigurationError(ApplicationCodes.EPHEMERAL_WITH_MAX_AGE, "you cannot have an ephemeral cookie with a maxAge", "cookie")

        self._transport = transport
        self._config = config
        self._audit = audit_log if audit_log is not None else AuditLog()
        self._clock = clock or VALIDATION.current_time_millis

        self._content: dict = {}
        self._baseline = VALIDATION.canonical_content_json(self._content)
        self._finalized = False

        self.loaded = False
        self.dirty = False

        # Set by reset() or a successful unbox
        self.created_at: typing.Optional[int] = None
        self.duration: int = config.duration
        self.active_duration: int = config.active_duration
        self.ephemeral: bool = config.cookie.ephemeral
        self.expires: typing.Optional[datetime] = None

        if config.cookie.max_age is not None:
            self.expires = millis_to_datetime(self._clock() + config.cookie.max_age)
        else:
            self.update_default_expires()

        if config.cookie.secure and not transport_is_secure(transport):
            raise ConfigurationError(ApplicationCodes.INSECURE_TRANSPORT,
                                     "you cannot have a secure cookie unless the connection is secure or the transport declares proxy_secure",
                                     "secure")


    @property
    def config(self) -> SessionConfig:
        return self._config


    """
        Session content, loaded from the incoming cookie on first access.
    """
    @property
    def content(self) -> dict:
        if not self.loaded:
            self.load_from_cookie()
        return self._content


    """
        Replace the whole content mapping.

        @param value (Mapping): New content.
        @ensures Non-mappings raise SessionMisuseError (a TypeError); the session becomes dirty.
    """
    @content.setter
    def content(self, value: typing.Any) -> None:

        if not isinstance(value, Mapping):
            raise SessionMisuseError(ApplicationCodes.INVALID_CONTENT, "cannot set client-session to non-object", "content")

        if not self.loaded:
            self.load_from_cookie()

        self._content = dict(value)
        self.dirty = True



    """
        Recompute the cookie expiry from the current lifetime state.

        @ensures Unchanged when maxAge is configured; None for ephemeral sessions;
                 otherwise createdAt (or now) + duration + 1s.
    """
    def update_default_expires(self) -> None:

        if self._config.cookie.max_age is not None:
            return

        if self.ephemeral:
            self.expires = None
        else:
            start = self.created_at if self.created_at is not None else self._clock()
            self.expires = millis_to_datetime(start + self.duration + CONSTANTS._EXPIRES_SLACK_MS)



    """
        Delete content keys and start a fresh validity window.

        @param keys_to_preserve (Iterable[str] | None): Keys to keep.
        @ensures createdAt = now, duration = configured duration, dirty and loaded are set.
    """
    def reset(self, keys_to_preserve: typing.Optional[typing.Iterable[str]] = None) -> None:

        preserved = set(keys_to_preserve or ())

        # Preserved keys have to come from the incoming cookie
        if preserved and not self.loaded:
            self.load_from_cookie()

        for key in list(self._content):
            if key not in preserved:
                del self._content[key]

        self.created_at = self._clock()
        self.duration = self._config.duration
        self.update_default_expires()
        self.dirty = True
        self.loaded = True

        self._audit.event(event="session_reset", cookie_name=self._config.cookie_name, preserved=len(preserved))


    """
        Alias for reset().
    """
    def destroy(self, keys_to_preserve: typing.Optional[typing.Iterable[str]] = None) -> None:
        self.reset(keys_to_preserve)



    """
        Change the validity window, starting now.

        @param new_duration (int): New duration in ms.
        @param ephemeral (bool): Whether the cookie should become a browser-session cookie.
        @require not (ephemeral and a maxAge is configured)
        @ensures Loads (as a write) if needed; createdAt = now; the session is dirty.
                 Content writes made before or after this call in the same request are kept.
    """
    def set_duration(self, new_duration: int, ephemeral: bool = False) -> None:

        if ephemeral and self._config.cookie.max_age is not None:
            raise ConfigurationError(ApplicationCodes.EPHEMERAL_WITH_MAX_AGE, "you cannot have an ephemeral cookie with a maxAge", "ephemeral")

        VALIDATION.validate_duration(new_duration, "duration")

        if not self.loaded:
            self.load_from_cookie(force_reset=True)

        self.dirty = True
        self.duration = new_duration
        self.created_at = self._clock()
        self.ephemeral = bool(ephemeral)
        self.update_default_expires()

        self._audit.event(event="session_duration_changed", cookie_name=self._config.cookie_name, duration=new_duration, ephemeral=self.ephemeral)



    """
        Replace content and lifetime with a decoded token.

        @return bool: False when the token was rejected (content is left empty).
    """
    def _unbox(self, token: str) -> bool:

        self._content.clear()

        try:
            decoded = CODEC.unbox(self._config, token)
        except AuthenticationFailure as e:
            self._audit.event(event="session_token_rejected", cookie_name=self._config.cookie_name, reason=e.application_code)
            return False

        self._content.update(decoded.content)
        self.created_at = decoded.created_at
        self.duration = decoded.duration
        self.update_default_expires()
        return True



    """
        Consult the incoming cookie and apply the sliding-expiration policy.

        @param force_reset (bool): Start a fresh session when there is no cookie (write path).
        @return bool: False when there was no cookie and force_reset was not requested.
        @ensures A rejected or expired token resets the session; a token close to expiry
                 is pushed back by active_duration; a valid token is accepted as-is.
    """
    def load_from_cookie(self, force_reset: bool = False) -> bool:

        token = self._transport.get(self._config.cookie_name)

        if token:
            if not self._unbox(token):
                self.reset()
            else:
                expires_at = self.created_at + self.duration
                now = self._clock()

                if expires_at < now:
                    self._audit.event(event="session_expired", cookie_name=self._config.cookie_name)
                    self.reset()

                # Close to expiry: push back so an active user is not interrupted
                elif expires_at - now < self.active_duration:
                    self.created_at += self.active_duration
                    self.dirty = True
                    self.update_default_expires()
                    self._audit.event(event="session_renewed", cookie_name=self._config.cookie_name)

        elif force_reset:
            # Writes made before the first load have nothing to be reset against
            self.reset(keys_to_preserve=list(self._content))

        else:
            return False

        self.loaded = True
        self._baseline = VALIDATION.canonical_content_json(self._content)
        return True



    """
        True when a write definitely happened or the content differs from what was loaded.
    """
    def is_dirty(self) -> bool:
        return self.dirty or VALIDATION.canonical_content_json(self._content) != self._baseline


    """
        Encode the current state into a token.
    """
    def box(self) -> str:
        created_at = self.created_at if self.created_at is not None else self._clock()
        return CODEC.encode(self._config, self._content, self.duration, created_at)


    """
        Attributes for the outgoing cookie.
    """
    def cookie_attributes(self) -> typing.Dict[str, typing.Any]:
        return cookie_attributes(self._config.cookie, self.expires)



    """
        Write the outgoing cookie if the session changed.

        @return bool: True if a cookie was handed to the transport.
        @ensures Runs at most once; a clean session writes nothing.
    """
    def finalize(self) -> bool:

        if self._finalized:
            return False
        self._finalized = True

        if not self.is_dirty():
            return False

        self._transport.set(self._config.cookie_name, self.box(), self.cookie_attributes())
        self._audit.event(event="session_cookie_written", cookie_name=self._config.cookie_name, ephemeral=self.ephemeral)
        return True



####################################################################################################
# Accessor
####################################################################################################

"""
    Mapping-like handle over a ClientSession.

    Content is reached through item access / get / set / delete; the lifetime
    operations are ordinary methods and never collide with content keys.
"""
class SessionProxy(MutableMapping):

    def __init__(self, session: ClientSession) -> None:
        self._session = session

    def __getitem__(self, key: str) -> typing.Any:
        return self._session.content[key]

    def __setitem__(self, key: str, value: typing.Any) -> None:
        self._session.content[key] = value

    def __delitem__(self, key: str) -> None:
        del self._session.content[key]

    def __iter__(self) -> typing.Iterator[str]:
        return iter(self._session.content)

    def __len__(self) -> int:
        return len(self._session.content)

    def __repr__(self) -> str:
        return f"SessionProxy({self._session.config.cookie_name!r}, keys={list(self._session.content)!r})"

    def set(self, key: str, value: typing.Any) -> None:
        self[key] = value

    def delete(self, key: str) -> None:
        self.pop(key, None)

    def replace(self, value: typing.Any) -> None:
        self._session.content = value

    def reset(self, keys_to_preserve: typing.Optional[typing.Iterable[str]] = None) -> None:
        self._session.reset(keys_to_preserve)

    def destroy(self, keys_to_preserve: typing.Optional[typing.Iterable[str]] = None) -> None:
        self._session.destroy(keys_to_preserve)

    def set_duration(self, new_duration: int, ephemeral: bool = False) -> None:
        self._session.set_duration(new_duration, ephemeral)

    @property
    def session(self) -> ClientSession:
        return self._session
