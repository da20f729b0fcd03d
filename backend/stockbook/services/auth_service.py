# Overview: Bearer-token issue and validation for company API access.

"""
API Token Service

Tokens are cryptographically secure, hashed in the database, and revocable.
Each token belongs to exactly one company, so validating a token establishes
the tenant context for the request.

- Random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Inactive companies and revoked tokens never authenticate
"""

import hashlib
import secrets
from dataclasses import dataclass

from flask import current_app

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import ApiToken, Company
from ..time_utils import utcnow


@dataclass
class AuthContext:
    """Identity attached to an authenticated request."""
    company: Company
    token: ApiToken

    @property
    def company_id(self) -> int:
        return self.company.id


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy)."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy (unlike passwords), so a fast hash is sufficient.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_company(*, name: str, code: str, email: str | None = None) -> Company:
    name = (name or "").strip()
    code = (code or "").strip().upper()
    if not name or not code:
        raise ValidationError("name and code are required")

    if db.session.query(Company).filter_by(code=code).first():
        raise ConflictError(f"Company code {code} already exists")

    company = Company(name=name, code=code, email=email, is_active=True)
    db.session.add(company)
    db.session.commit()
    current_app.logger.info("Company created id=%s code=%s", company.id, company.code)
    return company


def issue_token(company_id: int, label: str | None = None) -> tuple[ApiToken, str]:
    """
    Create a token for a company.

    Returns (ApiToken row, plaintext token). The plaintext is never stored.
    """
    company = db.session.query(Company).filter_by(id=company_id).first()
    if company is None:
        raise NotFoundError("Company not found")

    plaintext = generate_token()
    token = ApiToken(company_id=company.id, token_hash=hash_token(plaintext), label=label)
    db.session.add(token)
    db.session.commit()
    current_app.logger.info("API token issued id=%s company_id=%s", token.id, company.id)
    return token, plaintext


def validate_token(plaintext: str) -> AuthContext | None:
    """Resolve a bearer token to its company, or None when it must be rejected."""
    if not plaintext:
        return None

    token = db.session.query(ApiToken).filter_by(token_hash=hash_token(plaintext)).first()
    if token is None or not token.is_active:
        return None

    company = token.company
    if company is None or not company.is_active:
        return None

    token.last_used_at = utcnow()
    db.session.commit()
    return AuthContext(company=company, token=token)


def revoke_token(token_id: int) -> ApiToken:
    token = db.session.query(ApiToken).filter_by(id=token_id).first()
    if token is None:
        raise NotFoundError("Token not found")

    if token.is_active:
        token.is_active = False
        token.revoked_at = utcnow()
        db.session.commit()
        current_app.logger.info("API token revoked id=%s company_id=%s", token.id, token.company_id)
    return token
