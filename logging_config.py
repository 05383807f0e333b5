# logging_config.py
"""
Logging configuration.

Structured JSON logging plus an audit logger for ledger and consent events.
"""
import json
import logging
import sys
import time
from typing import Optional


class StructuredFormatter(logging.Formatter):
     """JSON formatter, one object per line."""

     def format(self, record: logging.LogRecord) -> str:
          log_data = {
               "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(record.created)),
               "level": record.levelname,
               "logger": record.name,
               "message": record.getMessage(),
               "module": record.module,
               "function": record.funcName,
               "line": record.lineno,
          }

          if record.exc_info:
               log_data["exception"] = self.formatException(record.exc_info)

          if hasattr(record, "extra_fields"):
               log_data.update(record.extra_fields)

          return json.dumps(log_data, default=str)


class AuditLogger:
     """
     Logger for security-relevant ledger events.

     Every event carries an ``event_type`` plus the identifiers needed to
     trace it back to a ledger row or consent relationship. Payload content
     is never logged.
     """

     def __init__(self, name: str = "healthchain.audit"):
          self._logger = logging.getLogger(name)

     def _log(self, level: int, event_type: str, message: str, **fields) -> None:
          self._logger.log(
               level,
               "%s: %s",
               event_type,
               message,
               extra={"extra_fields": {"event_type": event_type, **fields}},
          )

     def entry_anchored(
          self,
          tx_id: str,
          patient_id: int,
          payload_kind: str,
          prev_hash: Optional[str],
     ) -> None:
          self._log(
               logging.INFO,
               "LEDGER_ANCHORED",
               f"{payload_kind} anchored as {tx_id}",
               tx_id=tx_id,
               patient_id=patient_id,
               payload_kind=payload_kind,
               genesis=prev_hash is None,
          )

     def tx_id_collision(self, tx_id: str, attempt: int) -> None:
          self._log(
               logging.WARNING,
               "LEDGER_TX_ID_COLLISION",
               f"tx_id {tx_id} already taken (attempt {attempt})",
               tx_id=tx_id,
               attempt=attempt,
          )

     def verification(self, tx_id: str, requester_id: Optional[int], status: str) -> None:
          level = logging.WARNING if status == "invalid" else logging.INFO
          self._log(
               level,
               "LEDGER_VERIFICATION",
               f"{tx_id} -> {status}",
               tx_id=tx_id,
               requester_id=requester_id,
               status=status,
          )

     def consent_requested(self, consent_id: int, doctor_id: int, patient_id: int, reused: bool) -> None:
          self._log(
               logging.INFO,
               "CONSENT_REQUESTED",
               f"doctor {doctor_id} requested access to patient {patient_id}",
               consent_id=consent_id,
               doctor_id=doctor_id,
               patient_id=patient_id,
               reused=reused,
          )

     def consent_decision(self, consent_id: int, patient_id: int, status: str) -> None:
          self._log(
               logging.INFO,
               "CONSENT_DECISION",
               f"consent {consent_id} set to {status}",
               consent_id=consent_id,
               patient_id=patient_id,
               status=status,
          )


def configure_logging(
     level: str = "INFO",
     json_format: bool = True,
     log_file: Optional[str] = None,
) -> None:
     """
     Configure the root logger.

     Args:
          level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
          json_format: Use JSON formatting (recommended for production)
          log_file: Optional file path for log output
     """
     root_logger = logging.getLogger()
     root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

     for handler in root_logger.handlers[:]:
          root_logger.removeHandler(handler)

     if json_format:
          formatter = StructuredFormatter()
     else:
          formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

     console_handler = logging.StreamHandler(sys.stdout)
     console_handler.setFormatter(formatter)
     root_logger.addHandler(console_handler)

     if log_file:
          file_handler = logging.FileHandler(log_file)
          file_handler.setFormatter(formatter)
          root_logger.addHandler(file_handler)


audit_log = AuditLogger()
