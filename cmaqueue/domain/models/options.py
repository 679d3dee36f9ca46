"""Constructor-time configuration for the queue client.

ClientOptions is the only configuration the core ever sees. It is built
explicitly by the caller (or by the settings loader in the CLI) and passed
to the QueueClient constructor.
"""

import copy
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Mapping, Optional

from .common import DEFAULT_LOCALE

# Backoff: 10 retries, doubling from one second, no cap
DEFAULT_RETRIES = 10
DEFAULT_BACKOFF_FACTOR = 2.0
DEFAULT_MIN_TIMEOUT_S = 1.0
DEFAULT_CONCURRENCY = 5
DEFAULT_ENVIRONMENT = "master"


@dataclass
class RetryOptions:
    retries: int = DEFAULT_RETRIES
    factor: float = DEFAULT_BACKOFF_FACTOR
    min_timeout: float = DEFAULT_MIN_TIMEOUT_S
    max_timeout: Optional[float] = None
    randomize: bool = False


@dataclass
class QueueOptions:
    concurrency: int = DEFAULT_CONCURRENCY
    delay: float = 0.0  # seconds between one item settling and the next starting


@dataclass
class ClientOptions:
    """All configuration accepted by QueueClient.

    Every field is optional; ``locale`` defaults to 'en-US' and ``progress``
    to enabled.
    """
    locale: str = DEFAULT_LOCALE
    space_id: Optional[str] = None
    access_token: Optional[str] = None
    environment: str = DEFAULT_ENVIRONMENT
    retry_options: RetryOptions = field(default_factory=RetryOptions)
    queue_options: QueueOptions = field(default_factory=QueueOptions)
    progress: bool = True

    @classmethod
    def from_dict(cls, overrides: Optional[Mapping[str, Any]] = None) -> "ClientOptions":
        """Deep-merges a plain mapping over the defaults.

        Unknown keys are rejected so typos do not silently fall back to defaults.
        """
        merged = _deep_merge(asdict(cls()), overrides or {})
        known = {f.name for f in fields(cls)}
        unknown = set(merged) - known
        if unknown:
            raise ValueError(f"Unknown client option(s): {', '.join(sorted(unknown))}")
        merged["retry_options"] = _build(RetryOptions, merged["retry_options"], "retry_options")
        merged["queue_options"] = _build(QueueOptions, merged["queue_options"], "queue_options")
        return cls(**merged)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if data.get("access_token"):
            data["access_token"] = "***"
        return data


def _build(klass: type, values: Mapping[str, Any], section: str) -> Any:
    known = {f.name for f in fields(klass)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown {section} option(s): {', '.join(sorted(unknown))}")
    return klass(**values)


def _deep_merge(base: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    result = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        elif value is not None or key not in result:
            result[key] = copy.deepcopy(value)
    return result
