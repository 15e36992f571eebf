"""Typed JSON codec for persisted state.

Redis-backed storage needs to round-trip the objects bots keep in state
(dialog stacks, prompt options, pydantic models). Models, dataclasses,
enums and datetimes are tagged with their import path under the
`__type_name_` key so they can be rebuilt on read.
"""

import dataclasses
import importlib
import json
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel

TYPE_KEY = "__type_name_"


def type_name(cls: type) -> str:
    """Import path of a class, e.g. ``palaver.dialogs.models:DialogState``."""
    return f"{cls.__module__}:{cls.__qualname__}"


def resolve_type(name: str) -> type:
    """Import the class named by `type_name`."""
    module_name, _, qualname = name.partition(":")
    if not module_name or not qualname:
        raise ValueError(f"Invalid type name: {name!r}")
    target: Any = importlib.import_module(module_name)
    for part in qualname.split("."):
        target = getattr(target, part)
    return target


def to_jsonable(value: Any) -> Any:
    """Convert a state value into JSON-compatible data with type tags."""
    if isinstance(value, Enum):
        return {TYPE_KEY: type_name(type(value)), "value": value.value}
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, datetime):
        return {TYPE_KEY: "datetime", "value": value.isoformat()}
    if isinstance(value, dict):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, BaseModel):
        fields = {name: to_jsonable(getattr(value, name)) for name in type(value).model_fields}
        if value.__pydantic_extra__:
            fields.update({k: to_jsonable(v) for k, v in value.__pydantic_extra__.items()})
        return {TYPE_KEY: type_name(type(value)), "fields": fields}
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
        return {TYPE_KEY: type_name(type(value)), "fields": fields}
    if hasattr(value, "__dict__") and not callable(value):
        fields = {key: to_jsonable(item) for key, item in vars(value).items()}
        return {TYPE_KEY: type_name(type(value)), "attributes": fields}
    raise TypeError(f"Object of type {type(value).__name__} cannot be stored as state")


def from_jsonable(value: Any) -> Any:
    """Rebuild objects from data produced by `to_jsonable`."""
    if isinstance(value, list):
        return [from_jsonable(item) for item in value]
    if not isinstance(value, dict):
        return value
    if TYPE_KEY not in value:
        return {key: from_jsonable(item) for key, item in value.items()}

    name = value[TYPE_KEY]
    if name == "datetime":
        return datetime.fromisoformat(value["value"])

    cls = resolve_type(name)
    if issubclass(cls, Enum):
        return cls(value["value"])
    if "attributes" in value:
        instance = cls.__new__(cls)
        for key, item in value["attributes"].items():
            setattr(instance, key, from_jsonable(item))
        return instance

    fields = {key: from_jsonable(item) for key, item in value.get("fields", {}).items()}
    if issubclass(cls, BaseModel):
        return cls.model_construct(**fields)
    if dataclasses.is_dataclass(cls):
        init_fields = {f.name for f in dataclasses.fields(cls) if f.init}
        instance = cls(**{k: v for k, v in fields.items() if k in init_fields})
        for key, item in fields.items():
            if key not in init_fields:
                setattr(instance, key, item)
        return instance
    raise TypeError(f"Cannot rebuild stored value of type {name}")


def dumps(value: Any, **kwargs: Any) -> str:
    return json.dumps(to_jsonable(value), **kwargs)


def loads(data: str | bytes) -> Any:
    return from_jsonable(json.loads(data))
