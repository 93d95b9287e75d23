from __future__ import annotations

from datetime import date
from typing import Any, Mapping

from flask import request

from ..core.exceptions import ValidationError
from ..students.model import ClassKey
from .datetime_utils import parse_iso_date


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def require_date(params: Mapping[str, Any], field_name: str = "date") -> date:
    raw = params.get(field_name)
    if not raw:
        raise ValidationError(f"Please provide {field_name}")
    return parse_iso_date(raw)


def class_key_and_date(params: Mapping[str, Any]) -> tuple[ClassKey, date]:
    return ClassKey.from_params(params), require_date(params)
