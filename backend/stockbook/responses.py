# Overview: Uniform JSON envelope for every API answer.

from __future__ import annotations

from typing import Any

from flask import jsonify


def success(message: str, data: Any = None, status_code: int = 200):
    return jsonify({"status": True, "message": message, "data": data}), status_code


def failure(message: str, status_code: int, details: dict | None = None):
    body = {"status": False, "message": message}
    if details:
        body["details"] = details
    return jsonify(body), status_code
