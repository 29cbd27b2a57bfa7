#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: testErrorHandler.py

    Description:
        Test suite for the error taxonomy and the ErrorHandler failure packet.
"""

import json
import os
import tempfile
import unittest

from client_sessions.handlers.error_handler import (ErrorHandler, ClientSessionError, ConfigurationError, AuthenticationFailure,
                                                   SessionMisuseError, ApplicationCodes, HTTPCodes)
from client_sessions.utilities.audit_log import AuditLog


class TestErrorHandler(unittest.TestCase):

    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.log_path = os.path.join(self.tmp.name, "audit.log")
        self.handler = ErrorHandler(AuditLog(self.log_path))

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def read_log(self):
        with open(self.log_path, encoding="utf-8") as f:
            return [json.loads(line) for line in f]


    def test_error_classes(self):

        self.assertEqual(HTTPCodes.INTERNAL_SERVER_ERROR, ConfigurationError(ApplicationCodes.MISSING_SECRET, "x").http_code)
        self.assertEqual(HTTPCodes.UNAUTHORIZED, AuthenticationFailure(ApplicationCodes.MAC_MISMATCH, "x").http_code)

        misuse = SessionMisuseError(ApplicationCodes.INVALID_CONTENT, "x", "content")
        self.assertIsInstance(misuse, TypeError)
        self.assertIsInstance(misuse, ClientSessionError)
        self.assertEqual("content", misuse.field)


    def test_known_error_packet(self):

        packet, status = self.handler.handle_server_error(ConfigurationError(ApplicationCodes.INSECURE_TRANSPORT, "not secure", "secure"), context="test")

        self.assertEqual(500, status)
        self.assertEqual("failure", packet["response_status"])
        self.assertEqual(ApplicationCodes.INSECURE_TRANSPORT, packet["error_code"])
        self.assertEqual("not secure", packet["message"])
        self.assertEqual("secure", packet["field"])
        self.assertTrue(packet["timestamp"].endswith("Z"))


    """
        Unexpected exceptions do not leak their message to the client, only to the audit log.
    """
    def test_unknown_error_is_normalized(self):

        packet, status = self.handler.handle_server_error(RuntimeError("secret detail"), context="test")

        self.assertEqual(500, status)
        self.assertEqual(ApplicationCodes.INTERNAL_SERVER_ERROR, packet["error_code"])
        self.assertNotIn("secret detail", packet["message"])

        record = self.read_log()[-1]
        self.assertEqual("server_exception", record["event"])
        self.assertEqual("test", record["context"])
        self.assertIn("secret detail", record["detail"])


if __name__ == "__main__":
    unittest.main()
