"""
Tenant Service: company scoping helpers

Every request is scoped to one company, and cross-company access must be
explicitly denied.

SECURITY INVARIANTS:
1. Every authenticated request has g.company_id set
2. A company_id in a URL must equal g.company_id (ForbiddenError otherwise)
3. Every query touching tenant data goes through scoped_query
4. A record owned by another company is reported as not found, never as forbidden

USAGE:
    from stockbook.services.tenant_service import scoped_query, require_company_match

    require_company_match(company_id)
    items = scoped_query(InventoryItem, g.company_id).filter_by(category="tools").all()
"""

from flask import current_app, g, has_request_context, request

from ..errors import ForbiddenError, NotFoundError
from ..extensions import db


class TenantAccessError(ForbiddenError):
    """Raised when the tenant context is missing or mismatched."""
    pass


def get_current_company_id() -> int:
    """
    Get current tenant's company_id from Flask g context.

    SECURITY: Raises TenantAccessError if company_id not set.
    This should never happen after @require_auth, but is a safety check.
    """
    if not hasattr(g, 'company_id') or g.company_id is None:
        raise TenantAccessError("Tenant context not established")
    return g.company_id


def require_company_match(company_id, current_company_id: int | None = None) -> int:
    """
    Validate that a company id taken from the URL is the caller's own company.

    Returns the caller's company_id.
    """
    if current_company_id is None:
        current_company_id = get_current_company_id()

    try:
        requested = int(company_id)
    except (TypeError, ValueError):
        requested = None

    if requested != current_company_id:
        _log_cross_tenant_attempt(
            f"Path company {company_id} does not match caller company {current_company_id}"
        )
        raise ForbiddenError("Unauthorized")

    return current_company_id


def scoped_query(model, company_id: int | None = None):
    """
    Create a base query scoped to one company.

    Args:
        model: SQLAlchemy model class (must have a company_id column)
        company_id: Company ID (defaults to g.company_id)
    """
    if company_id is None:
        company_id = get_current_company_id()

    return db.session.query(model).filter(model.company_id == company_id)


def get_scoped_or_404(model, record_id: int, company_id: int, *, label: str, query=None):
    """
    Load one tenant-owned row or raise NotFoundError.

    Rows owned by another company are indistinguishable from missing ones.
    """
    if query is None:
        query = scoped_query(model, company_id)
    record = query.filter(model.id == record_id).first()
    if record is None:
        raise NotFoundError(f"{label} not found")
    return record


def _log_cross_tenant_attempt(reason: str) -> None:
    """Cross-company access attempts are logged; they are worth alerting on."""
    if has_request_context():
        current_app.logger.warning(
            "Cross-tenant access denied: %s (%s %s from %s)",
            reason,
            request.method,
            request.path,
            request.remote_addr,
        )
    else:
        current_app.logger.warning("Cross-tenant access denied: %s", reason)
