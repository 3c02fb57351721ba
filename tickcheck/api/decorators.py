#!filepath: tickcheck/api/decorators.py
from __future__ import annotations

from functools import wraps
from typing import Any, Callable

from flask import jsonify


def handle_run_not_found(func: Callable[..., Any]):
    """
    Decorator: convert RunRegistry KeyError into HTTP 404.

    Contract (FROZEN):
    - Only catches KeyError
    - Assumes KeyError means run_id not found
    - Returns JSON {error, run_id}
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyError:
            # convention: run_id is always a path parameter
            return jsonify({
                "error": "run not found",
                "run_id": kwargs.get("run_id"),
            }), 404

    return wrapper
