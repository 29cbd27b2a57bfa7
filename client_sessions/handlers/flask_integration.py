#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: flask_integration.py

    Description:
        Flask wiring for cookie-carried sessions. FlaskCookieTransport adapts
        the current request/response to the CookieTransport contract, and the
        ClientSessions extension attaches one ClientSession per request under
        its request key (before_request) and finalizes it exactly once before
        the response leaves (after_request). Application code reaches the
        session through get_session().
"""


import typing
from flask import Flask, Response, g, request
from client_sessions.handlers.error_handler import ConfigurationError, SessionMisuseError, ApplicationCodes
from client_sessions.handlers.config_handler import SessionConfig, load_config_from_mapping
from client_sessions.handlers.session_handler import ClientSession, SessionProxy
from client_sessions.utilities.audit_log import AuditLog
import client_sessions.constants as CONSTANTS
import client_sessions.handlers.sanitization_validation as VALIDATION


####################################################################################################
# Transport
####################################################################################################

class FlaskCookieTransport:

    """
        Bind the transport to a Flask request.

        @param flask_request (flask.Request): Current request.
        @param proxy_secure (bool): Treat the connection as secure (TLS terminated at a trusted proxy).
    """
    def __init__(self, flask_request, proxy_secure: bool = False) -> None:
        self._request = flask_request
        self.proxy_secure = proxy_secure
        self._pending: typing.List[typing.Tuple[str, str, typing.Dict[str, typing.Any]]] = []

    def get(self, name: str) -> typing.Optional[str]:
        return self._request.cookies.get(name)

    def set(self, name: str, value: str, attributes: typing.Dict[str, typing.Any]) -> None:
        self._pending.append((name, value, dict(attributes)))

    def is_secure(self) -> bool:
        return bool(self._request.is_secure)


    """
        Write every queued cookie onto the response.

        @param response (flask.Response): Outgoing response.
        @return flask.Response: The same response.
    """
    def apply(self, response: Response) -> Response:

        for name, value, attributes in self._pending:
            response.set_cookie(name,
                                value,
                                max_age=attributes.get("max_age"),
                                expires=attributes.get("expires"),
                                path=attributes.get("path", "/"),
                                domain=attributes.get("domain"),
                                secure=attributes.get("secure", False),
                                httponly=attributes.get("httponly", True),
                                samesite=attributes.get("samesite"))

        self._pending.clear()
        return response



####################################################################################################
# Extension
####################################################################################################

class ClientSessions:

    """
        Create the extension, optionally binding it to an app right away.

        @param app (Flask | None): Application to bind.
        @param config (SessionConfig | None): Prebuilt config; read from app.config when omitted.
        @param audit_log (AuditLog | None): Shared audit log.
    """
    def __init__(self, app: typing.Optional[Flask] = None, config: typing.Optional[SessionConfig] = None, audit_log: typing.Optional[AuditLog] = None) -> None:

        self.config = config
        self.audit_log = audit_log
        self.proxy_secure = False

        if app is not None:
            self.init_app(app, config)


    """
        Register the per-request hooks on an application.

        @param app (Flask): Application.
        @param config (SessionConfig | None): Overrides the config given to the constructor.
        @ensures The configuration is built and validated now; a bad one raises ConfigurationError here.
    """
    def init_app(self, app: Flask, config: typing.Optional[SessionConfig] = None) -> None:

        try:
            self.config = config or self.config or load_config_from_mapping(app.config)
        except ConfigurationError as e:
            if self.audit_log is not None:
                self.audit_log.event(event="session_config_error", error_code=e.application_code, detail=e.detail)
            raise

        if self.audit_log is None:
            self.audit_log = AuditLog()

        self.proxy_secure = VALIDATION.coerce_to_bool(app.config.get(CONSTANTS._CONFIG_PREFIX + "PROXY_SECURE", False))

        app.extensions.setdefault(CONSTANTS._EXTENSION_NAME, {})[self.config.request_key] = self
        app.before_request(self._open_session)
        app.after_request(self._finalize_session)


    """
        before_request: attach a ClientSession for this request.
    """
    def _open_session(self) -> None:

        sessions = _request_sessions()

        # Already attached under this name
        if self.config.request_key in sessions:
            return None

        transport = FlaskCookieTransport(request, proxy_secure=self.proxy_secure)

        try:
            session = ClientSession(transport, self.config, audit_log=self.audit_log)
        except ConfigurationError as e:
            self.audit_log.event(event="session_config_error", error_code=e.application_code, detail=e.detail)
            raise

        sessions[self.config.request_key] = (session, transport)
        return None


    """
        after_request: finalize once and copy any cookie onto the response.
    """
    def _finalize_session(self, response: Response) -> Response:

        entry = _request_sessions().get(self.config.request_key)
        if entry is None:
            return response

        session, transport = entry
        session.finalize()
        return transport.apply(response)



####################################################################################################
# Accessors
####################################################################################################

def _request_sessions() -> dict:
    if not hasattr(g, CONSTANTS._G_SESSIONS_ATTR):
        setattr(g, CONSTANTS._G_SESSIONS_ATTR, {})
    return getattr(g, CONSTANTS._G_SESSIONS_ATTR)



"""
    Return the session handle for the current request.

    @param request_key (str | None): Name the session was attached under; the only
                                     attached session is used when omitted.
    @return SessionProxy
    @ensures Raises SessionMisuseError when no session is attached under that name.
"""
def get_session(request_key: typing.Optional[str] = None) -> SessionProxy:

    sessions = _request_sessions()

    if request_key is None and len(sessions) == 1:
        request_key = next(iter(sessions))

    entry = sessions.get(request_key)
    if entry is None:
        raise SessionMisuseError(ApplicationCodes.SESSION_NOT_ATTACHED, f"No client session attached as {request_key!r}", "request_key")

    return SessionProxy(entry[0])



"""
    Replace the content of the current request's session.

    @param value (Mapping): New content; anything else raises SessionMisuseError (TypeError).
"""
def replace_session(value: typing.Any, request_key: typing.Optional[str] = None) -> None:
    get_session(request_key).replace(value)
