# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""
Request body serialization.

Endpoints speak one of two JSON dialects: the resource envelope (JSON:API)
or plain JSON. The dialect is inferred from how the payload model's fields
are declared: fields carrying a ``jsonapi`` marker count toward the
envelope, fields with an explicit alias count toward plain JSON.
"""

import logging
from collections.abc import Sequence
from enum import Enum
from typing import Any

import orjson
from pydantic import BaseModel

from .errors import InvalidRequestBodyError, InvalidStructFormatError
from .jsonapi import jsonapi_fields, marshal_payload

logger = logging.getLogger(__name__)

__all__ = ("BodyFormat", "body_format", "serialize_request_body")


class BodyFormat(str, Enum):
    JSONAPI = "jsonapi"
    JSON = "json"


def _model_type(body: Any) -> type[BaseModel]:
    # A list body is classified by its element type; every element must
    # be an instance of the same model.
    if isinstance(body, BaseModel):
        return type(body)
    if isinstance(body, Sequence) and not isinstance(body, (str, bytes, bytearray)):
        if not body:
            raise InvalidRequestBodyError("body list must contain at least one model")
        model_type = type(body[0])
        if not (isinstance(model_type, type) and issubclass(model_type, BaseModel)):
            raise InvalidRequestBodyError()
        if any(type(item) is not model_type for item in body):
            raise InvalidRequestBodyError("body list elements must share one model type")
        return model_type
    raise InvalidRequestBodyError()


def body_format(model_type: type[BaseModel]) -> BodyFormat:
    """
    Infer the wire dialect of a model type.

    Raises:
        InvalidStructFormatError: If the model declares fields for both dialects.
    """
    jsonapi_count = len(jsonapi_fields(model_type))
    json_count = sum(
        1
        for info in model_type.model_fields.values()
        if info.alias is not None or info.serialization_alias is not None
    )
    if jsonapi_count > 0 and json_count > 0:
        raise InvalidStructFormatError(
            f"{model_type.__name__} declares {jsonapi_count} resource-envelope "
            f"and {json_count} plain JSON fields"
        )
    if json_count > 0:
        return BodyFormat.JSON
    return BodyFormat.JSONAPI


def serialize_request_body(body: BaseModel | Sequence[BaseModel]) -> bytes:
    """
    Serialize a model, or a homogeneous list of models, for a request body.

    Args:
        body: The payload to encode.

    Returns:
        The encoded document.

    Raises:
        InvalidRequestBodyError: If the body is not a model or a list of one model type.
        InvalidStructFormatError: If the model mixes the two dialects.
    """
    model_type = _model_type(body)
    fmt = body_format(model_type)
    logger.debug(f"Serializing {model_type.__name__} request body as {fmt.value}")

    if fmt is BodyFormat.JSON:
        if isinstance(body, BaseModel):
            return orjson.dumps(body.model_dump(mode="json", by_alias=True, exclude_none=True))
        return orjson.dumps(
            [m.model_dump(mode="json", by_alias=True, exclude_none=True) for m in body]
        )
    return marshal_payload(body)
