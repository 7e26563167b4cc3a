from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Tuple

from flask import jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import (
    AuthorizationError,
    DomainError,
    NotFoundError,
    PersistenceError,
    StateConflictError,
    ValidationError,
)
from ..core.roles import coerce_role

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (StateConflictError, 409),
    (PersistenceError, 500),
)


def status_for(error: DomainError) -> int:
    for cls, code in _STATUS_BY_ERROR:
        if isinstance(error, cls):
            return code
    return 400


def json_endpoint(view):
    """Login check + JSON body for the result + domain error -> HTTP status mapping."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"success": False, "message": "Vui lòng đăng nhập để tiếp tục!"}), 401
        try:
            result = view(*args, **kwargs)
        except DomainError as e:
            code = status_for(e)
            if code >= 500:
                logger.error("%s %s failed: %s", request.method, request.path, e)
            return jsonify({"success": False, "message": str(e)}), code
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.path)
            return jsonify({"success": False, "message": "Lỗi hệ thống, vui lòng thử lại sau"}), 500

        status = 200
        if isinstance(result, tuple):
            result, status = result
        body = {"success": True}
        body.update(result or {})
        return jsonify(body), status

    return wrapper


def current_actor() -> Tuple[int, Role]:
    return int(session["user_id"]), coerce_role(session.get("role"))


def json_body() -> dict:
    data: Any = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Dữ liệu gửi lên phải là JSON object")
    return data


def int_arg(name: str, default=None):
    value = request.args.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"Tham số {name} không hợp lệ")
