#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: error_handler.py

    Description:
        Centralized error taxonomy for the client-side session codec.
        Configuration errors are fatal and surface at setup or session
        construction; authentication failures stay inside the codec and
        degrade to "no valid session"; misuse of the session accessor is a
        TypeError. The ErrorHandler converts any of these (or an unexpected
        exception) into a canonical failure packet and records it in the
        audit log.
"""


from dataclasses import dataclass
from typing import Tuple
from datetime import datetime, timezone
from client_sessions.utilities.audit_log import AuditLog



"""
    Container Class for HTTP status constants.
"""
@dataclass
class HTTPCodes:
    # 200 OK
    OK = 200

    # 400 Bad Request
    BAD_REQUEST = 400

    # 401 Unauthorized
    UNAUTHORIZED = 401

    # 500 Internal Server Error
    INTERNAL_SERVER_ERROR = 500


"""
    Container Class for application error code strings.
"""
@dataclass
class ApplicationCodes:

    # Configuration
    MISSING_OPTIONS          = "missing_options"
    MISSING_SECRET           = "missing_secret"
    INVALID_COOKIE_NAME      = "invalid_cookie_name"
    INVALID_DURATION         = "invalid_duration"
    INVALID_KEY_TYPE         = "invalid_key_type"
    INVALID_KEY_LENGTH       = "invalid_key_length"
    IDENTICAL_KEYS           = "identical_keys"
    UNSUPPORTED_ALGORITHM    = "unsupported_algorithm"
    EPHEMERAL_WITH_MAX_AGE   = "ephemeral_with_max_age"
    INSECURE_TRANSPORT       = "insecure_transport"
    INVALID_COOKIE_OPTIONS   = "invalid_cookie_options"

    # Token authentication
    MALFORMED_TOKEN          = "malformed_token"
    INVALID_BASE64URL        = "invalid_base64url"
    INVALID_IV_LENGTH        = "invalid_iv_length"
    INVALID_TIMESTAMP        = "invalid_timestamp"
    MAC_MISMATCH             = "mac_mismatch"
    DECRYPTION_FAILED        = "decryption_failed"
    COOKIE_NAME_MISMATCH     = "cookie_name_mismatch"
    MALFORMED_JSON           = "malformed_json"

    # Misuse
    INVALID_CONTENT          = "invalid_content"
    UNSERIALIZABLE_CONTENT   = "unserializable_content"
    SESSION_NOT_ATTACHED     = "session_not_attached"

    INTERNAL_SERVER_ERROR    = "internal_server_error"






class ClientSessionError(Exception):

    """
        Initialize a ClientSessionError containing application code, HTTP code, detail message, and field context.

        @param application_code (str): Identifier from ApplicationCodes signaling the failure type.
        @param http_code (int): HTTP status code associated with the error.
        @param detail (str): Descriptive message.
        @param field (str): Logical field related to the error (optional).
        @ensures Error metadata is accessible to the centralized ErrorHandler.
    """
    def __init__(self, application_code: str, http_code: int, detail: str, field: str = "") -> None:
        self.application_code = application_code
        self.http_code = http_code
        self.detail = detail
        self.field = field
        super().__init__(f"{application_code}: {detail}")



"""
    Invalid or missing setup: secret/keys, algorithms, cookie name, durations,
    incompatible ephemeral + maxAge, or a secure cookie over an insecure transport.
"""
class ConfigurationError(ClientSessionError):

    def __init__(self, application_code: str, detail: str, field: str = "") -> None:
        super().__init__(application_code, HTTPCodes.INTERNAL_SERVER_ERROR, detail, field)



"""
    Token rejected by the codec. Never reaches application code.
"""
class AuthenticationFailure(ClientSessionError):

    def __init__(self, application_code: str, detail: str, field: str = "") -> None:
        super().__init__(application_code, HTTPCodes.UNAUTHORIZED, detail, field)



class SessionMisuseError(ClientSessionError, TypeError):

    def __init__(self, application_code: str, detail: str, field: str = "") -> None:
        super().__init__(application_code, HTTPCodes.INTERNAL_SERVER_ERROR, detail, field)






class ErrorHandler:

    """
        Initialize the ErrorHandler and attach an AuditLog for diagnostic event recording.

        @param audit_log (AuditLog | None): Shared audit log; a default one is created when omitted.
        @ensures ErrorHandler is ready to format and log errors.
    """
    def __init__(self, audit_log: AuditLog = None) -> None:

        self.audit_log = audit_log if audit_log is not None else AuditLog()


    """
        Process an exception and return a standardized failure packet.

        @param e (Exception): Exception raised during request handling.
        @param context (str): Logical context string identifying the failing operation.
        @return tuple[dict, int]: (clean_error_packet, http_status_code)
        @ensures Exception is logged to audit_log and a canonical failure packet is returned.
    """
    def handle_server_error(self, e: Exception, context: str = "") -> Tuple[dict, int]:

        if isinstance(e, ClientSessionError):
            application_code = e.application_code
            http_code = e.http_code
            message = e.detail
            field = e.field
        else:
            # Anything else is normalized to INTERNAL_SERVER_ERROR
            application_code = ApplicationCodes.INTERNAL_SERVER_ERROR
            http_code = HTTPCodes.INTERNAL_SERVER_ERROR
            message = "An internal server error occurred. Please try again later."
            field = ""

        # Operators get the raw detail, clients get the clean packet
        self.audit_log.event(event="server_exception", context=context, error_code=application_code, detail=str(e))

        return self.create_error_response_packet(message, application_code, field), http_code


    """
        Build a standardized error response packet.

        @param message (str): Human-readable error message.
        @param error_code (str): One of ApplicationCodes.*.
        @param field (str): Logical field associated with the error (optional).
        @return dict: Packet with status, timestamp, message, error_code and field.
    """
    def create_error_response_packet(self, message: str, error_code: str, field: str = "") -> dict:

        timestamp_iso = datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")

        return {
            "response_status": "failure",
            "timestamp": timestamp_iso,
            "message": message,
            "error_code": error_code,
            "field": field,
        }
