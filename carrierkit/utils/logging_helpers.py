"""Logging helpers for adapter operations.

Carrier responses can be large (a pickup-point list runs to thousands of
entries). These helpers keep log lines bounded according to the
LoggingOptions carried on the AdapterContext, and redact secrets before
anything is written.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Literal

from carrierkit.utils.redaction import redact_for_logging

logger = logging.getLogger(__name__)

# Operations that produce very large payloads stay quiet unless asked.
DEFAULT_SILENT_OPERATIONS: tuple[str, ...] = ("fetch_pickup_points",)

_RAW_KEYS = ("raw", "raw_carrier_response", "rawCarrierResponse")


@dataclass(frozen=True)
class LoggingOptions:
    """Verbosity controls for adapter logging.

    Attributes:
        max_array_items: Items kept from each list. 0 logs only the count.
        max_depth: Nesting depth kept before collapsing to a placeholder.
        log_raw_response: False drops raw carrier payloads, True logs them
            truncated, "summary" logs only their shape.
        log_metadata: Whether ``metadata`` entries are logged.
        silent_operations: Operation names whose logging is suppressed.
            None falls back to DEFAULT_SILENT_OPERATIONS.
    """

    max_array_items: int = 10
    max_depth: int = 2
    log_raw_response: bool | Literal["summary"] = "summary"
    log_metadata: bool = False
    silent_operations: tuple[str, ...] | None = None

    def merged(self, **overrides: Any) -> "LoggingOptions":
        return replace(self, **overrides)


DEFAULT_LOGGING_OPTIONS = LoggingOptions()


def get_logging_options(context: Any) -> LoggingOptions:
    """Return the context's LoggingOptions, or the defaults."""
    options = getattr(context, "logging_options", None)
    return options if isinstance(options, LoggingOptions) else DEFAULT_LOGGING_OPTIONS


def is_silent_operation(
    context: Any,
    default_silent: Iterable[str] = DEFAULT_SILENT_OPERATIONS,
) -> bool:
    """Whether logging is suppressed for the context's current operation.

    Args:
        context: AdapterContext (or anything with ``operation_name`` and
            ``logging_options``).
        default_silent: Operations silenced when the context's options do
            not list any.

    Returns:
        True when the operation name is listed as silent.
    """
    operation = getattr(context, "operation_name", None)
    if not operation:
        return False
    configured = get_logging_options(context).silent_operations
    silent = configured if configured is not None else tuple(default_silent)
    return operation in silent


def truncate_for_logging(obj: Any, options: LoggingOptions, depth: int = 0) -> Any:
    """Bound an object's size for logging.

    Lists are cut to ``max_array_items`` with a trailing "... and N more
    items" marker; nesting beyond ``max_depth`` collapses to a placeholder.
    """
    if depth >= options.max_depth:
        if isinstance(obj, (list, tuple)):
            return f"[Array: {len(obj)} items]"
        if isinstance(obj, Mapping):
            return f"[Object: {len(obj)} keys]"
        return obj

    if isinstance(obj, (list, tuple)):
        if options.max_array_items == 0:
            return f"[Array: {len(obj)} items (truncated)]"
        kept = [
            truncate_for_logging(item, options, depth + 1)
            for item in obj[:options.max_array_items]
        ]
        if len(obj) > options.max_array_items:
            kept.append(f"... and {len(obj) - options.max_array_items} more items")
        return kept

    if isinstance(obj, Mapping):
        result = {}
        for key, value in obj.items():
            if key == "metadata" and not options.log_metadata:
                size = len(value) if isinstance(value, Mapping) else 0
                result[key] = f"[Object: metadata ({size} keys, omitted)]"
                continue
            result[key] = truncate_for_logging(value, options, depth + 1)
        return result

    return obj


def summarize_raw_response(raw: Any) -> dict[str, Any]:
    """Describe a raw carrier payload by shape instead of content."""
    if raw is None or raw == "" or raw == [] or raw == {}:
        return {"message": "No raw response"}
    if isinstance(raw, (list, tuple)):
        first = raw[0] if isinstance(raw[0], Mapping) else {}
        keys = list(first.keys())
        return {
            "type": "array",
            "count": len(raw),
            "itemKeys": keys[:5],
            "itemCount": len(keys),
        }
    if isinstance(raw, Mapping):
        keys = list(raw.keys())
        return {"type": "object", "keyCount": len(keys), "keys": keys[:10]}
    return {"type": type(raw).__name__, "value": str(raw)[:100]}


def prepare_log_data(data: Mapping[str, Any], options: LoggingOptions) -> dict[str, Any]:
    """Apply raw-response policy, truncation and redaction to log data."""
    processed = dict(data)
    for key in _RAW_KEYS:
        if key not in processed:
            continue
        if options.log_raw_response is False:
            del processed[key]
        elif options.log_raw_response == "summary":
            processed[key] = summarize_raw_response(processed[key])
    for key, value in processed.items():
        if key.startswith("_") or not isinstance(value, (Mapping, list, tuple)):
            continue
        if key in _RAW_KEYS and options.log_raw_response == "summary":
            continue
        processed[key] = truncate_for_logging(value, options)
    return redact_for_logging(processed)


def safe_log(
    context: Any,
    level: int,
    message: str,
    data: Mapping[str, Any] | None = None,
    *,
    default_silent: Iterable[str] = DEFAULT_SILENT_OPERATIONS,
) -> None:
    """Log through the context's logger, respecting its LoggingOptions.

    Args:
        context: AdapterContext carrying the logger and options.
        level: Standard logging level (e.g. logging.DEBUG).
        message: Log message.
        data: Structured data, truncated and redacted before logging.
        default_silent: Operations silenced when the context lists none.
    """
    if is_silent_operation(context, default_silent):
        return
    target = getattr(context, "logger", None) or logger
    if not target.isEnabledFor(level):
        return
    if data:
        target.log(level, "%s %s", message, prepare_log_data(data, get_logging_options(context)))
    else:
        target.log(level, "%s", message)
