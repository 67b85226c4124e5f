# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""
Response decoding into caller-chosen destinations.

A destination is either a model class or a writable byte sink:

- a model declaring ``items`` (a list of resource models) and
  ``pagination`` is decoded from a multi-resource envelope, with the
  pagination details read from the document's ``meta`` section;
- a model declaring neither is decoded from a single-resource envelope;
- an object with a ``write`` method receives the raw body verbatim.
"""

import logging
from typing import Any, Protocol, TypeVar, runtime_checkable

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import DecodeShapeError, JSONAPIError
from .jsonapi import model_target, unmarshal_many_payload, unmarshal_payload

M = TypeVar("M", bound=BaseModel)
logger = logging.getLogger(__name__)

__all__ = (
    "ByteSink",
    "ListOptions",
    "Pagination",
    "parse_pagination",
    "unmarshal_response",
    "write_response",
)


@runtime_checkable
class ByteSink(Protocol):
    def write(self, data: bytes, /) -> Any: ...


class ListOptions(BaseModel):
    """Pagination options shared by every list call."""

    model_config = ConfigDict(populate_by_name=True)

    page_number: int | None = Field(default=None, alias="page[number]")
    page_size: int | None = Field(default=None, alias="page[size]")


class Pagination(BaseModel):
    """Pagination details of a list response."""

    model_config = ConfigDict(populate_by_name=True)

    current_page: int = Field(default=0, alias="current-page")
    previous_page: int | None = Field(default=0, alias="prev-page")
    next_page: int | None = Field(default=0, alias="next-page")
    total_pages: int = Field(default=0, alias="total-pages")
    total_count: int = Field(default=0, alias="total-count")


def parse_pagination(body: bytes | str) -> Pagination:
    """Read ``meta.pagination`` out of a list document; absent keys read as zero."""
    try:
        document = orjson.loads(body)
    except orjson.JSONDecodeError as e:
        raise JSONAPIError(f"invalid list document: {e}") from e
    meta = document.get("meta") if isinstance(document, dict) else None
    raw = (meta or {}).get("pagination") or {}
    try:
        return Pagination.model_validate(raw)
    except ValidationError as e:
        raise JSONAPIError(f"invalid pagination details: {e}") from e


def _list_item_type(model: type[BaseModel]) -> type[BaseModel] | None:
    fields = model.model_fields
    has_items = "items" in fields
    has_pagination = "pagination" in fields

    if not has_items and not has_pagination:
        return None
    if has_items != has_pagination:
        missing = "pagination" if has_items else "items"
        raise DecodeShapeError(
            f"{model.__name__} declares only one of items/pagination (missing {missing})"
        )

    target, many = model_target(fields["items"].annotation)
    if not many:
        raise DecodeShapeError(f"{model.__name__}.items must be a list")
    if target is None:
        raise DecodeShapeError(f"{model.__name__}.items must be a list of models")
    return target


def unmarshal_response(body: bytes, model: type[M]) -> M:
    """
    Decode a response body into a new instance of ``model``.

    Raises:
        DecodeShapeError: If ``model`` declares only one of ``items`` and
            ``pagination``, or ``items`` is not a list of models. Nothing
            is decoded in that case.
        JSONAPIError: If the body is not a valid resource envelope.
    """
    if not (isinstance(model, type) and issubclass(model, BaseModel)):
        raise DecodeShapeError(f"{model!r} must be a model class or a byte sink")

    item_type = _list_item_type(model)
    if item_type is None:
        return unmarshal_payload(body, model)

    items = unmarshal_many_payload(body, item_type)
    pagination = parse_pagination(body)
    logger.debug(
        f"Decoded {len(items)} {item_type.__name__} items "
        f"(page {pagination.current_page}/{pagination.total_pages})"
    )
    return model.model_validate({"items": items, "pagination": pagination})


def write_response(body: bytes, sink: ByteSink) -> ByteSink:
    """Copy the raw body into ``sink`` without interpreting it."""
    sink.write(body)
    return sink
