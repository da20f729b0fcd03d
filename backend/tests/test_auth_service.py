# Overview: Pytest coverage for company creation and bearer tokens.

import pytest

from stockbook.errors import ConflictError, NotFoundError, ValidationError
from stockbook.services import auth_service


class TestCompanies:
    def test_code_is_normalized(self, db_session):
        company = auth_service.create_company(name="Gamma", code=" gam ")
        assert company.code == "GAM"
        assert company.is_active is True

    def test_duplicate_code(self, db_session, company_a):
        with pytest.raises(ConflictError):
            auth_service.create_company(name="Other", code=company_a.code.lower())

    def test_name_required(self, db_session):
        with pytest.raises(ValidationError):
            auth_service.create_company(name="  ", code="X")


class TestTokens:
    def test_token_hash_only(self, db_session, company_a):
        token, plaintext = auth_service.issue_token(company_a.id)
        assert len(plaintext) == 64
        assert token.token_hash == auth_service.hash_token(plaintext)
        assert token.token_hash != plaintext

    def test_validate_sets_last_used(self, db_session, company_a):
        token, plaintext = auth_service.issue_token(company_a.id)
        assert token.last_used_at is None

        context = auth_service.validate_token(plaintext)
        assert context.company_id == company_a.id
        assert context.token.last_used_at is not None

    def test_revoked_token_rejected(self, db_session, company_a):
        token, plaintext = auth_service.issue_token(company_a.id)
        revoked = auth_service.revoke_token(token.id)
        assert revoked.revoked_at is not None
        assert auth_service.validate_token(plaintext) is None

    def test_unknown_and_empty_tokens(self, db_session, company_a):
        assert auth_service.validate_token("") is None
        assert auth_service.validate_token("0" * 64) is None

    def test_issue_for_missing_company(self, db_session):
        with pytest.raises(NotFoundError):
            auth_service.issue_token(424242)

    def test_revoke_missing_token(self, db_session):
        with pytest.raises(NotFoundError):
            auth_service.revoke_token(424242)
