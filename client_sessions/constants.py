#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: constants.py

    Description:
        Centralized constants for the client-side session codec. Defines the
        session defaults (duration, sliding renewal window, cookie name), the
        supported encryption and signature algorithm tables, key-derivation
        labels, wire-format separators, and the configuration key prefix
        shared by the config, codec, session, and Flask integration modules.
"""

import re
from typing import Dict


# Default validity window for a session (24 hours, milliseconds)
_DEFAULT_DURATION_MS: int = 24 * 60 * 60 * 1000

# Default sliding renewal window (5 minutes, milliseconds); 0 disables renewal
_DEFAULT_ACTIVE_DURATION_MS: int = 5 * 60 * 1000

# Default cookie name
_DEFAULT_COOKIE_NAME = "session_state"

# Extra second added to cookie expiry; Date conversion truncates milliseconds
_EXPIRES_SLACK_MS: int = 1000

# Latest instant a datetime can hold, 9999-12-31T23:59:59.999Z
_MAX_EXPIRES_MS: int = 253402300799999


################################################################################################
# Algorithms
################################################################################################

# Cipher name -> exact key byte length (all CBC mode)
_ENCRYPTION_ALGORITHMS: Dict[str, int] = {
    "aes128": 16,
    "aes192": 24,
    "aes256": 32,
}
_DEFAULT_ENCRYPTION_ALGORITHM = "aes256"

# HMAC name -> minimum key byte length
_SIGNATURE_ALGORITHMS: Dict[str, int] = {
    "sha256": 32,
    "sha256-drop128": 32,
    "sha384": 48,
    "sha384-drop192": 48,
    "sha512": 64,
    "sha512-drop256": 64,
}
_DEFAULT_SIGNATURE_ALGORITHM = "sha256"

# "<digest>" or "<digest>-drop<bits>"
_SIGNATURE_ALGORITHM_RX = re.compile(r"^([^-]+)(?:-drop(\d+))?$")


################################################################################################
# Key derivation
################################################################################################

_KDF_ENCRYPTION_LABEL = b"cookiesession-encryption"
_KDF_SIGNATURE_LABEL = b"cookiesession-signature"



################################################################################################
# Wire format
################################################################################################

# AES block-sized IV
_IV_LEN_BYTES = 16

# Separates the bound cookie name from the JSON body inside the plaintext
_COOKIE_NAME_SEP = "="

# Separates the five token fields
_TOKEN_FIELD_SEP = "."
_TOKEN_FIELD_COUNT = 5

# Unpadded base64url alphabet
_BASE64URL_RX = re.compile(r"^[A-Za-z0-9_\-]*\Z")

# Non-negative decimal integer (createdAt / duration fields)
_DECIMAL_RX = re.compile(r"^[0-9]+\Z")


################################################################################################
# Configuration
################################################################################################

# Prefix for keys read from Flask app.config / environment
_CONFIG_PREFIX = "CLIENT_SESSIONS_"

# Environment variable overriding the audit log location
_AUDIT_LOG_ENV = "CLIENT_SESSIONS_AUDIT_LOG"

# Flask app.extensions / g attribute names
_EXTENSION_NAME = "client_sessions"
_G_SESSIONS_ATTR = "_client_sessions"
