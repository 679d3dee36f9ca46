"""Decides whether a failed remote call is worth retrying.

The remote client reports failures with a JSON-encoded payload as the error
message. A status code in the 5xx range means the server had a temporary
problem and the call may be retried; anything else is terminal. Terminal
payloads are compacted to the few fields worth showing to a user.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from cmaqueue.domain.exceptions import ClassifiedRemoteError

logger = logging.getLogger(__name__)

TRANSIENT_STATUS_RANGE = range(500, 600)


@dataclass(frozen=True)
class Classification:
    """Outcome of classifying one failure.

    Attributes:
        transient: True if the failure may be retried.
        error: The error to surface if the failure is (or becomes) final.
            For transient failures this is the raw error; for terminal ones
            it is a ClassifiedRemoteError, or the raw error when the payload
            could not be decoded.
        status: Status code found in the payload, if any.
    """
    transient: bool
    error: BaseException
    status: Optional[int] = None

    @property
    def is_terminal(self) -> bool:
        return not self.transient


def error_message(error: BaseException) -> str:
    """Returns the message an exception was raised with."""
    if error.args and isinstance(error.args[0], str):
        return error.args[0]
    return str(error)


def error_name(error: BaseException) -> str:
    """Returns the error's own name tag, falling back to its class name."""
    name = getattr(error, "name", None)
    return name if isinstance(name, str) and name else type(error).__name__


def _parse_payload(error: BaseException) -> Optional[Dict[str, Any]]:
    try:
        payload = json.loads(error_message(error))
    except (TypeError, ValueError):
        return None
    return payload if isinstance(payload, dict) else None


def _status_of(payload: Dict[str, Any]) -> Optional[int]:
    status = payload.get("status")
    # bool is an int subclass; a boolean status is not a status code
    if isinstance(status, int) and not isinstance(status, bool):
        return status
    return None


def classify(error: BaseException) -> Classification:
    """Classifies a raw failure as transient or terminal. Never raises."""
    try:
        payload = _parse_payload(error)
        if payload is None:
            logger.debug(f"Unstructured error {type(error).__name__}; passing it through as terminal.")
            return Classification(transient=False, error=error)

        status = _status_of(payload)
        if status is not None and status in TRANSIENT_STATUS_RANGE:
            return Classification(transient=True, error=error, status=status)

        compact = ClassifiedRemoteError(payload, kind=error_name(error))
        return Classification(transient=False, error=compact, status=status)
    except Exception as e:
        # Compaction failed (e.g. a payload json cannot re-serialize); keep the original
        logger.warning(f"Failed to classify {type(error).__name__}: {e}")
        return Classification(transient=False, error=error)
