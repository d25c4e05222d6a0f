import hashlib
import logging
from typing import Any, Union

# Library logger; silent until the application configures logging
logger = logging.getLogger("dynafriend")
logger.addHandler(logging.NullHandler())

# Anything that quacks like a logger: a Logger or a LoggerAdapter
LoggerLike = Union[logging.Logger, logging.LoggerAdapter]


def _digest(value: Any) -> str:
    return hashlib.sha256(str(value).encode("utf-8")).hexdigest()[:8]


def redact_key(key: Any) -> str:
    """
    Hashes key values and condition operands before they reach a log record,
    so records can be correlated without exposing the values themselves.

    A dict is redacted per attribute (``{"tenant": "3f1a..."}``); anything
    else, including an operand tuple, is hashed as a whole.
    """
    try:
        if isinstance(key, dict):
            return str({name: _digest(value) for name, value in key.items()})
        return _digest(key)
    except Exception:
        return "<redaction_failed>"
