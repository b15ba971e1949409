"""
Payload encoding for instance arguments, results and event data.

Supports:
- JSON-native values (str, int, float, bool, None, list, dict)
- Dates (datetime, date, timedelta)
- Decimal, Enum, bytes, set
- Anything else via cloudpickle
"""

import base64
import json
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any

import cloudpickle

from approvalflow.core.exceptions import SerializationError


class PayloadEncoder(json.JSONEncoder):
    """JSON encoder tagging non-native values with a ``__type__`` marker."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return {"__type__": "datetime", "value": obj.isoformat()}

        if isinstance(obj, date):
            return {"__type__": "date", "value": obj.isoformat()}

        if isinstance(obj, timedelta):
            return {"__type__": "timedelta", "value": obj.total_seconds()}

        if isinstance(obj, Decimal):
            return {"__type__": "decimal", "value": str(obj)}

        if isinstance(obj, Enum):
            return {
                "__type__": "enum",
                "class": f"{obj.__class__.__module__}.{obj.__class__.__name__}",
                "value": obj.value,
            }

        if isinstance(obj, bytes):
            return {"__type__": "bytes", "value": base64.b64encode(obj).decode("ascii")}

        if isinstance(obj, (set, frozenset)):
            return {"__type__": "set", "value": list(obj)}

        try:
            pickled = cloudpickle.dumps(obj)
        except Exception as e:
            raise SerializationError(
                f"Object of type {type(obj).__name__} is not JSON serializable "
                f"and could not be pickled: {e}",
                data_type=type(obj),
            ) from e
        return {"__type__": "cloudpickle", "value": base64.b64encode(pickled).decode("ascii")}


def serialize(obj: Any) -> str:
    """
    Serialize a Python object to a JSON string.

    Examples:
        >>> serialize("Hello John!")
        '"Hello John!"'
    """
    return json.dumps(obj, cls=PayloadEncoder)


def serialize_args(*args: Any) -> str:
    """
    Serialize positional arguments to a JSON list.

    Examples:
        >>> serialize_args("John")
        '["John"]'
    """
    return json.dumps(list(args), cls=PayloadEncoder)


def serialize_kwargs(**kwargs: Any) -> str:
    """Serialize keyword arguments to a JSON object."""
    return json.dumps(kwargs, cls=PayloadEncoder)
