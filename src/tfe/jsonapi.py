# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""
Resource-envelope (JSON:API) support for pydantic models.

A model opts into the resource-envelope dialect by annotating its fields
with markers:

    ```python
    class Workspace(BaseModel):
        id: Annotated[str, Primary("workspaces")] = ""
        name: Annotated[str, Attr("name")] = ""
        locked: Annotated[bool, Attr("locked")] = False
        organization: Annotated[Organization | None, Relation("organization")] = None
    ```

Fields without a marker are ignored by the envelope codec.
"""

import types
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from functools import cache
from typing import Any, TypeVar, Union, get_args, get_origin

import orjson
from pydantic import BaseModel, Field, ValidationError

from .errors import JSONAPIError

M = TypeVar("M", bound=BaseModel)

__all__ = (
    "Attr",
    "ErrorObject",
    "ErrorsPayload",
    "Links",
    "Primary",
    "Relation",
    "jsonapi_fields",
    "marshal_payload",
    "model_target",
    "primary_type",
    "unmarshal_errors",
    "unmarshal_many_payload",
    "unmarshal_payload",
)


@dataclass(frozen=True)
class Primary:
    """Marks the resource identifier; ``type`` is the resource type name."""

    type: str


@dataclass(frozen=True)
class Attr:
    """Marks a resource attribute stored under ``name``."""

    name: str
    iso8601: bool = False
    omitempty: bool = False


@dataclass(frozen=True)
class Relation:
    """Marks a to-one or to-many relationship stored under ``name``."""

    name: str
    omitempty: bool = False


@dataclass(frozen=True)
class Links:
    """Marks a field holding the resource's ``links`` object."""


MARKERS = (Primary, Attr, Relation, Links)


class ErrorObject(BaseModel):
    id: str | None = None
    status: str | int | None = None
    code: str | None = None
    title: str | None = None
    detail: str | None = None
    meta: Any = None


class ErrorsPayload(BaseModel):
    errors: list[ErrorObject] = Field(default_factory=list)


@cache
def jsonapi_fields(model: type[BaseModel]) -> tuple[tuple[str, Any], ...]:
    """Return ``(field_name, marker)`` pairs for every marked field of a model."""
    fields = []
    for name, info in model.model_fields.items():
        for meta in info.metadata:
            if isinstance(meta, MARKERS):
                fields.append((name, meta))
                break
    return tuple(fields)


def primary_type(model: type[BaseModel]) -> str | None:
    for _, marker in jsonapi_fields(model):
        if isinstance(marker, Primary):
            return marker.type
    return None


def _strip_optional(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def model_target(annotation: Any) -> tuple[type[BaseModel] | None, bool]:
    """Resolve an annotation to ``(model_class, is_list)``."""
    annotation = _strip_optional(annotation)
    many = False
    if get_origin(annotation) in (list, tuple, Sequence):
        args = get_args(annotation)
        annotation = _strip_optional(args[0]) if args else Any
        many = True
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation, many
    return None, many


def _is_zero(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, bytes, list, tuple, dict, set)):
        return len(value) == 0
    if isinstance(value, bool):
        return value is False
    if isinstance(value, (int, float)):
        return value == 0
    return False


def _dump_attribute(value: Any, iso8601: bool = False) -> Any:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat() if iso8601 else int(value.timestamp())
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, BaseModel):
        marked = [(n, m) for n, m in jsonapi_fields(type(value)) if isinstance(m, Attr)]
        if not marked:
            return value.model_dump(mode="json", by_alias=True, exclude_none=True)
        return {
            m.name: _dump_attribute(getattr(value, n), m.iso8601)
            for n, m in marked
            if not (m.omitempty and _is_zero(getattr(value, n)))
        }
    if isinstance(value, (list, tuple, set)):
        return [_dump_attribute(v, iso8601) for v in value]
    if isinstance(value, Mapping):
        return {k: _dump_attribute(v, iso8601) for k, v in value.items()}
    return value


def _linkage(model: BaseModel) -> dict[str, Any]:
    node: dict[str, Any] = {}
    for name, marker in jsonapi_fields(type(model)):
        if isinstance(marker, Primary):
            node["type"] = marker.type
            node["id"] = str(getattr(model, name))
            return node
    raise JSONAPIError(f"{type(model).__name__} has no primary field to link to")


def _marshal_node(model: BaseModel) -> dict[str, Any]:
    node: dict[str, Any] = {}
    attributes: dict[str, Any] = {}
    relationships: dict[str, Any] = {}

    for name, marker in jsonapi_fields(type(model)):
        value = getattr(model, name)
        if isinstance(marker, Primary):
            node["type"] = marker.type
            if not _is_zero(value):
                node["id"] = str(value)
        elif isinstance(marker, Attr):
            if marker.omitempty and _is_zero(value):
                continue
            attributes[marker.name] = _dump_attribute(value, marker.iso8601)
        elif isinstance(marker, Relation):
            _, many = model_target(type(model).model_fields[name].annotation)
            if _is_zero(value):
                if not marker.omitempty:
                    relationships[marker.name] = {"data": [] if many else None}
                continue
            if isinstance(value, (list, tuple)):
                relationships[marker.name] = {"data": [_linkage(v) for v in value]}
            else:
                relationships[marker.name] = {"data": _linkage(value)}
        elif isinstance(marker, Links) and value:
            node["links"] = value

    if "type" not in node:
        raise JSONAPIError(f"{type(model).__name__} has no primary field")
    if attributes:
        node["attributes"] = attributes
    if relationships:
        node["relationships"] = relationships
    return node


def marshal_payload(payload: BaseModel | Sequence[BaseModel]) -> bytes:
    """
    Encode one model or a list of models as a resource envelope.

    Only resource linkage is written for relationships; related resources
    are never side-loaded under ``included``.
    """
    if isinstance(payload, BaseModel):
        document = {"data": _marshal_node(payload)}
    else:
        document = {"data": [_marshal_node(m) for m in payload]}
    return orjson.dumps(document)


def _load_document(data: bytes | str | Mapping[str, Any]) -> Mapping[str, Any]:
    if isinstance(data, Mapping):
        return data
    try:
        document = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        raise JSONAPIError(f"invalid resource envelope: {e}") from e
    if not isinstance(document, dict):
        raise JSONAPIError("resource envelope must be a JSON object")
    return document


def _index_included(document: Mapping[str, Any]) -> dict[tuple[str, str], dict]:
    included = {}
    for node in document.get("included") or []:
        if isinstance(node, dict) and "type" in node and "id" in node:
            included[(node["type"], str(node["id"]))] = node
    return included


def _load_attribute(value: Any, annotation: Any) -> Any:
    target, many = model_target(annotation)
    if target is None:
        return value
    marked = [(n, m) for n, m in jsonapi_fields(target) if isinstance(m, Attr)]
    if not marked:
        return value

    def _one(raw: Any) -> Any:
        if not isinstance(raw, Mapping):
            return raw
        return {
            n: _load_attribute(raw[m.name], target.model_fields[n].annotation)
            for n, m in marked
            if raw.get(m.name) is not None
        }

    if many and isinstance(value, list):
        return [_one(v) for v in value]
    return _one(value)


def _resolve(
    linkage: Mapping[str, Any],
    model: type[M],
    included: dict[tuple[str, str], dict],
    seen: frozenset,
) -> M:
    key = (linkage.get("type"), str(linkage.get("id")))
    node = linkage
    if key not in seen:
        node = included.get(key, linkage)
    return _unmarshal_node(node, model, included, seen | {key})


def _unmarshal_node(
    node: Mapping[str, Any],
    model: type[M],
    included: dict[tuple[str, str], dict],
    seen: frozenset = frozenset(),
) -> M:
    attributes = node.get("attributes") or {}
    relationships = node.get("relationships") or {}
    values: dict[str, Any] = {}

    for name, marker in jsonapi_fields(model):
        annotation = model.model_fields[name].annotation
        if isinstance(marker, Primary):
            if node.get("type") != marker.type:
                raise JSONAPIError(
                    f'trying to unmarshal an object of type "{node.get("type")}", '
                    f'but "{marker.type}" does not match'
                )
            if node.get("id") is not None:
                values[name] = node["id"]
        elif isinstance(marker, Attr):
            # null attributes leave the field default in place
            if attributes.get(marker.name) is not None:
                values[name] = _load_attribute(attributes[marker.name], annotation)
        elif isinstance(marker, Relation):
            relationship = relationships.get(marker.name)
            if not isinstance(relationship, Mapping) or "data" not in relationship:
                continue
            target, many = model_target(annotation)
            if target is None:
                raise JSONAPIError(f"relation {name} of {model.__name__} is not a model")
            data = relationship["data"]
            if data is None:
                values[name] = [] if many else None
            elif many:
                values[name] = [_resolve(d, target, included, seen) for d in data]
            else:
                values[name] = _resolve(data, target, included, seen)
        elif isinstance(marker, Links) and "links" in node:
            values[name] = node["links"]

    try:
        return model.model_validate(values)
    except ValidationError as e:
        raise JSONAPIError(f"unable to decode {model.__name__}: {e}") from e


def unmarshal_payload(data: bytes | str | Mapping[str, Any], model: type[M]) -> M:
    """Decode a single-resource envelope into an instance of ``model``."""
    document = _load_document(data)
    node = document.get("data")
    if not isinstance(node, Mapping):
        raise JSONAPIError("expected a single resource as primary data")
    return _unmarshal_node(node, model, _index_included(document))


def unmarshal_many_payload(data: bytes | str | Mapping[str, Any], model: type[M]) -> list[M]:
    """Decode a multi-resource envelope into a list of ``model`` instances."""
    document = _load_document(data)
    nodes = document.get("data")
    if not isinstance(nodes, list):
        raise JSONAPIError("expected a list of resources as primary data")
    included = _index_included(document)
    return [_unmarshal_node(node, model, included) for node in nodes]


def unmarshal_errors(data: bytes | str) -> list[ErrorObject]:
    """
    Decode an error document into its error objects.

    Raises:
        ValueError: If the body is not a valid error document.
    """
    return ErrorsPayload.model_validate_json(data).errors
