#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: server.py

    Description:
        Flask application factory demonstrating cookie-carried sessions.
        Reads CLIENT_SESSIONS_* settings from the environment (overridable by
        the caller), attaches the ClientSessions extension, and exposes
        routes to read, update, reset, and re-time the session. All errors are
        normalized through the centralized ErrorHandler.
"""


import os
import typing
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from client_sessions.utilities.audit_log import AuditLog
from client_sessions.handlers.error_handler import ErrorHandler, ApplicationCodes, HTTPCodes, ClientSessionError
from client_sessions.handlers.flask_integration import ClientSessions, get_session
import client_sessions.constants as CONSTANTS


#####################################################################################################################################################################

"""
    Parse the JSON body of the current request into a dict.
"""
def _json_body() -> dict:

    body = request.get_json(silent=True)
    if body is None:
        return {}

    if not isinstance(body, dict):
        raise ClientSessionError(ApplicationCodes.INVALID_CONTENT, HTTPCodes.BAD_REQUEST, "Invalid JSON structure (expected object)", "body")

    return body



"""
    Create and configure the demo Flask application.

    @param overrides (Mapping | None): Values merged into app.config after the environment.
    @return Flask: Application with the session extension attached.
    @ensures Session configuration is validated here; a bad one raises ConfigurationError.
"""
def create_app(overrides: typing.Optional[typing.Mapping[str, typing.Any]] = None) -> Flask:

    app = Flask(__name__)

    # Environment first, explicit overrides win
    app.config.update({k: v for k, v in os.environ.items() if k.startswith(CONSTANTS._CONFIG_PREFIX)})
    if overrides:
        app.config.update(overrides)

    app.audit_log = AuditLog(app.config.get(CONSTANTS._AUDIT_LOG_ENV))
    app.error_handler = ErrorHandler(app.audit_log)
    app.client_sessions = ClientSessions(app, audit_log=app.audit_log)


    ################################################################################################
    # ROUTES
    ################################################################################################

    """
        Return the current session content.
    """
    @app.get("/session")
    def read_session():
        return jsonify(dict(get_session())), HTTPCodes.OK


    """
        Merge the JSON body into the session; null values delete keys.
    """
    @app.post("/session")
    def update_session():

        session = get_session()
        for key, value in _json_body().items():
            if value is None:
                session.delete(key)
            else:
                session[key] = value

        return jsonify(dict(session)), HTTPCodes.OK


    """
        Reset the session, keeping any keys listed under "preserve".
    """
    @app.post("/session/reset")
    def reset_session():

        session = get_session()
        session.reset(_json_body().get("preserve"))
        return jsonify(dict(session)), HTTPCodes.OK


    """
        Change the session duration, optionally making the cookie ephemeral.
    """
    @app.post("/session/duration")
    def set_session_duration():

        body = _json_body()
        if "duration" not in body:
            raise ClientSessionError(ApplicationCodes.INVALID_DURATION, HTTPCodes.BAD_REQUEST, "duration is required", "duration")

        session = get_session()
        session.set_duration(body["duration"], bool(body.get("ephemeral", False)))
        return jsonify(dict(session)), HTTPCodes.OK


    ################################################################################################
    # GLOBAL ERROR HANDLERS
    ################################################################################################

    """
        Catch-all handler for any exception raised during request processing.
    """
    @app.errorhandler(Exception)
    def handle_internal_error(e: Exception):

        # Routing errors (404/405) keep their own status
        if isinstance(e, HTTPException):
            return e

        clean_packet, status = app.error_handler.handle_server_error(e, context="global_error_handler")
        return jsonify(clean_packet), status

    return app
