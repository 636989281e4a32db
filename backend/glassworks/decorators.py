# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import Organization


ORG_HEADER = "X-Org-Id"


def require_org(f):
    """
    Establish tenant context from the X-Org-Id header.

    MULTI-TENANT: Sets g.org_id and g.organization. Every query a route makes
    must be scoped by g.org_id.

    Returns:
    - 400 if the header is missing or not an integer
    - 404 if the organization does not exist or is deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = (request.headers.get(ORG_HEADER) or "").strip()
        if not raw:
            return jsonify({"error": f"{ORG_HEADER} header required"}), 400
        try:
            org_id = int(raw)
        except ValueError:
            return jsonify({"error": f"{ORG_HEADER} must be an integer"}), 400

        org = db.session.get(Organization, org_id)
        if org is None or not org.is_active:
            return jsonify({"error": "Organization not found"}), 404

        g.org_id = org.id
        g.organization = org
        return f(*args, **kwargs)

    return decorated_function
