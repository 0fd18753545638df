"""Serialization helpers for invocation requests and JSON results.

Only declared field names of dataclasses and pydantic models are translated
between snake_case and camelCase. Keys of plain dicts are caller data and are
never renamed in either direction.
"""

from __future__ import annotations

import dataclasses
import json
import types
import typing
from typing import Any

from pydantic import BaseModel, PydanticSchemaGenerationError, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticSerializationError, to_jsonable_python

from nodebridge.config.loader import snake_to_camel
from nodebridge.hosting.protocol import BinaryStream, ContentType, InvocationRequest
from nodebridge.utils.exceptions import RequestEncodingError, TypeMismatchError

_RAW_RESULT_TYPES = (Any, object)
_JSON_SCALARS = (str, int, float, bool, type(None))


def to_wire(value: Any) -> Any:
    """Convert an argument to a JSON-compatible value.

    Dataclass and model fields are sent under camelCase names (or the model's
    own alias); dict keys are sent untouched.
    """
    if isinstance(value, BaseModel):
        return {
            field.serialization_alias or field.alias or snake_to_camel(name): to_wire(getattr(value, name))
            for name, field in type(value).model_fields.items()
        }
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {snake_to_camel(f.name): to_wire(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, dict):
        return {str(k): to_wire(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_wire(v) for v in value]
    if isinstance(value, _JSON_SCALARS):
        return value
    # datetime, UUID, Enum, Decimal, Path and friends
    return to_jsonable_python(value)


def request_payload(request: InvocationRequest) -> dict[str, Any]:
    """Wire form of a request: moduleName, exportedFunctionName, args."""
    return {
        "moduleName": request.module_name,
        "exportedFunctionName": request.exported_function_name,
        "args": [to_wire(arg) for arg in request.args],
    }


def encode_request(request: InvocationRequest) -> bytes:
    """Encode a request as a UTF-8 JSON body."""
    try:
        return json.dumps(request_payload(request), ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError, PydanticSerializationError) as exc:
        raise RequestEncodingError(request.module_name, str(exc)) from exc


def _field_types(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls)
    except (NameError, TypeError):
        return {f.name: f.type for f in dataclasses.fields(cls)}


def _is_structured(tp: Any) -> bool:
    return isinstance(tp, type) and (issubclass(tp, BaseModel) or dataclasses.is_dataclass(tp))


def from_wire(data: Any, result_type: Any) -> Any:
    """Map camelCase field names onto snake_case fields, guided by result_type.

    Walks the JSON value alongside the type: dataclass and model fields are
    renamed, containers are descended into, dict keys are left alone.
    """
    origin = typing.get_origin(result_type)
    args = typing.get_args(result_type)

    if origin is typing.Annotated:
        return from_wire(data, args[0])
    if origin is typing.Union or origin is types.UnionType:
        if isinstance(data, dict):
            candidates = [arg for arg in args if _is_structured(arg)]
        elif isinstance(data, list):
            candidates = [arg for arg in args if typing.get_origin(arg) in (list, tuple, set, frozenset)]
        else:
            candidates = []
        return from_wire(data, candidates[0]) if candidates else data

    if origin is None and _is_structured(result_type):
        if not isinstance(data, dict):
            return data
        if issubclass(result_type, BaseModel):
            fields = {
                name: field.annotation
                for name, field in result_type.model_fields.items()
                # Aliased fields are matched by pydantic itself.
                if field.alias is None and field.validation_alias is None
            }
        else:
            fields = _field_types(result_type)
        wire_names = {snake_to_camel(name): name for name in fields}
        converted = {}
        for key, value in data.items():
            name = key if key in fields else wire_names.get(key)
            if name is None:
                converted[key] = value
            else:
                converted[name] = from_wire(value, fields[name])
        return converted

    if origin in (list, set, frozenset) and isinstance(data, list) and args:
        return [from_wire(item, args[0]) for item in data]
    if origin is tuple and isinstance(data, list) and args:
        if len(args) == 2 and args[1] is Ellipsis:
            return [from_wire(item, args[0]) for item in data]
        return [from_wire(item, tp) for item, tp in zip(data, args)] + data[len(args):]
    if origin is dict and isinstance(data, dict) and len(args) == 2:
        return {key: from_wire(value, args[1]) for key, value in data.items()}
    return data


def decode_text(body: str, result_type: Any) -> str:
    if result_type is not str:
        raise TypeMismatchError(ContentType.TEXT.value, result_type, "request the result as str")
    return body


def decode_json(body: str, result_type: Any = Any) -> Any:
    """Deserialize a JSON body into result_type without lax coercion."""
    if result_type is BinaryStream:
        raise TypeMismatchError(ContentType.JSON.value, result_type)
    try:
        data = json.loads(body)
    except json.JSONDecodeError as exc:
        raise TypeMismatchError(ContentType.JSON.value, result_type, f"invalid JSON body ({exc})") from exc
    if result_type in _RAW_RESULT_TYPES:
        return data
    try:
        adapter = TypeAdapter(result_type)
    except PydanticSchemaGenerationError as exc:
        raise TypeMismatchError(ContentType.JSON.value, result_type, "type cannot be built from JSON") from exc
    try:
        return adapter.validate_json(json.dumps(from_wire(data, result_type)), strict=True)
    except PydanticValidationError as exc:
        raise TypeMismatchError(ContentType.JSON.value, result_type, str(exc)) from exc
