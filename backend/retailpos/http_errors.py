# Overview: Maps engine errors to HTTP responses.

from flask import jsonify

from .errors import PosError

STATUS_BY_KIND = {
    "not_found": 404,
    "insufficient_stock": 400,
    "invalid_adjustment": 400,
    "invalid_input": 400,
    "conflict": 409,
    "transaction_failure": 500,
}


def error_response(exc: PosError):
    """JSON body from exc.to_dict(), status chosen by the error kind."""
    return jsonify(exc.to_dict()), STATUS_BY_KIND.get(exc.kind, 400)
