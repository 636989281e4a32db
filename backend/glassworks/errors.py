# Overview: Maps service-layer exceptions to JSON error responses for routes.

from flask import jsonify, request

from .validation import ValidationError, ConflictError
from .services.document_service import DocumentError
from .services.numbering_service import SequenceAllocationError


# Exceptions routes translate instead of logging as 500s.
HANDLED_ERRORS = (ValidationError, ConflictError, DocumentError, SequenceAllocationError)


def error_response(exc: Exception):
    """
    - ValidationError: 400 with the offending field
    - DocumentError: 404 when the document is missing, otherwise 400
    - ConflictError: 409
    - SequenceAllocationError: 503, safe for the client to retry
    """
    if isinstance(exc, ValidationError):
        return jsonify(exc.to_dict()), 400
    if isinstance(exc, DocumentError):
        body = {"error": str(exc)}
        if exc.details:
            body["details"] = exc.details
        return jsonify(body), 404 if exc.not_found else 400
    if isinstance(exc, ConflictError):
        return jsonify({"error": str(exc)}), 409
    if isinstance(exc, SequenceAllocationError):
        return jsonify({
            "error": "Could not allocate document number, please retry",
            "retryable": True,
        }), 503
    raise exc


def json_body() -> dict:
    """Request JSON object, or a ValidationError for anything else."""
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data
