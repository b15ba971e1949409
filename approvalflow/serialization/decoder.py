"""
Payload decoding.

Reverses the encoding performed by encoder.py.
"""

import base64
import importlib
import json
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Tuple

import cloudpickle

from approvalflow.core.exceptions import SerializationError


def payload_object_hook(dct: dict) -> Any:
    """Decode ``__type__``-tagged dictionaries back to Python objects."""
    if "__type__" not in dct:
        return dct

    type_name = dct["__type__"]

    if type_name == "datetime":
        return datetime.fromisoformat(dct["value"])

    if type_name == "date":
        return date.fromisoformat(dct["value"])

    if type_name == "timedelta":
        return timedelta(seconds=dct["value"])

    if type_name == "decimal":
        return Decimal(dct["value"])

    if type_name == "enum":
        module_name, class_name = dct["class"].rsplit(".", 1)
        try:
            enum_class = getattr(importlib.import_module(module_name), class_name)
            return enum_class(dct["value"])
        except (ImportError, AttributeError, ValueError) as e:
            raise SerializationError(f"Cannot restore enum {dct['class']}: {e}") from e

    if type_name == "bytes":
        return base64.b64decode(dct["value"])

    if type_name == "set":
        return set(dct["value"])

    if type_name == "cloudpickle":
        return cloudpickle.loads(base64.b64decode(dct["value"]))

    return dct


def deserialize(json_str: str) -> Any:
    """
    Deserialize a JSON string to a Python object.

    Examples:
        >>> deserialize('"Hello John!"')
        'Hello John!'
        >>> deserialize('{"__type__": "timedelta", "value": 30.0}')
        datetime.timedelta(seconds=30)
    """
    return json.loads(json_str, object_hook=payload_object_hook)


def deserialize_args(json_str: str) -> Tuple[Any, ...]:
    """Deserialize a JSON list to a tuple of arguments."""
    args_list = deserialize(json_str)
    return tuple(args_list) if isinstance(args_list, list) else ()


def deserialize_kwargs(json_str: str) -> dict:
    """Deserialize a JSON object to keyword arguments."""
    kwargs_dict = deserialize(json_str)
    return kwargs_dict if isinstance(kwargs_dict, dict) else {}
