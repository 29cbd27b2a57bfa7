#!/usr/bin/env python3
# -*- coding: utf-8 -*-


from datetime import datetime, timezone
import json
import os
import sys
import typing
import threading

import client_sessions.constants as CONSTANTS

_AUDIT_FILE = os.path.join(os.path.dirname(__file__), "audit.log")


#####################################################################################################################################################################

"""
    Provides persistent structured audit logging for client sessions.

    One JSON object per line. Never records session content or key material.
"""
class AuditLog:

	def __init__(self, path: typing.Optional[str] = None):
		self._lock = threading.RLock()
		self.path = path or os.environ.get(CONSTANTS._AUDIT_LOG_ENV) or _AUDIT_FILE


	def event(self, **kv: typing.Any):

		# Construct ISO8601Z timestamp
		ts = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

		record = {"timestamp": ts}
		record.update(kv)

		with self._lock:
			try:
				with open(self.path, "a", encoding="utf-8") as f:
					json.dump(record, f, ensure_ascii=False, default=str)
					f.write("\n")

			except Exception as e:
				print(f"Audit log write error: {e}", file=sys.stderr)
