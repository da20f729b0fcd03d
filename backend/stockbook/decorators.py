# Overview: Request decorators for API routes.

from functools import wraps

from flask import g, request

from .responses import failure
from .services import auth_service


def require_auth(f):
    """
    Require a company bearer token and establish tenant context.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.company: The authenticated Company
    - g.company_id: The tenant id every service call is scoped to
    - g.auth_context: The full AuthContext object

    SECURITY: Returns 401 if:
    - No Authorization header
    - Unknown or revoked token
    - Company deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return failure("Authentication required", 401)

        token = auth_header.split(" ", 1)[1].strip()
        context = auth_service.validate_token(token)

        if not context:
            return failure("Invalid or revoked token", 401)

        g.company = context.company
        g.company_id = context.company_id
        g.auth_context = context

        return f(*args, **kwargs)

    return decorated_function
