# Overview: Pytest coverage for the Flask CLI command groups.

from stockbook.models import ApiToken, Company, InventoryItem
from stockbook.services.auth_service import validate_token


class TestCompanyCommands:
    def test_create_and_list(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["companies", "create", "--name", "Acme", "--code", "acme"])
        assert result.exit_code == 0
        assert "PASS Created company: Acme" in result.output
        assert db_session.query(Company).filter_by(code="ACME").count() == 1

        result = runner.invoke(args=["companies", "list"])
        assert "ACME" in result.output

    def test_duplicate_code(self, app, db_session, company_a):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["companies", "create", "--name", "Again", "--code", company_a.code])
        assert "FAIL" in result.output
        assert db_session.query(Company).count() == 1


class TestTokenCommands:
    def test_issue_and_revoke(self, app, db_session, company_a):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["tokens", "issue", "--company-id", str(company_a.id), "--label", "pos"])
        assert result.exit_code == 0
        plaintext = next(
            line.split(" ", 1)[1] for line in result.output.splitlines() if line.startswith("TOKEN ")
        )
        assert validate_token(plaintext).company_id == company_a.id

        token = db_session.query(ApiToken).filter_by(company_id=company_a.id).one()
        assert token.token_hash != plaintext

        result = runner.invoke(args=["tokens", "revoke", "--token-id", str(token.id)])
        assert "PASS Revoked" in result.output
        assert validate_token(plaintext) is None

    def test_issue_unknown_company(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["tokens", "issue", "--company-id", "9999"])
        assert "FAIL Company not found" in result.output


class TestInventoryCommands:
    def test_recompute_status(self, app, db_session, company_a, item_a):
        db_session.query(InventoryItem).filter_by(id=item_a.id).update({"status": "out_of_stock"})
        db_session.commit()
        runner = app.test_cli_runner()

        dry = runner.invoke(args=["inventory", "recompute-status", "--dry-run"])
        assert "DRIFT item" in dry.output
        assert db_session.get(InventoryItem, item_a.id).status == "out_of_stock"

        fixed = runner.invoke(args=["inventory", "recompute-status", "--company-id", str(company_a.id)])
        assert "PASS Updated 1 item(s)." in fixed.output
        db_session.expire_all()
        assert db_session.get(InventoryItem, item_a.id).status == "in_stock"

    def test_recompute_status_clean(self, app, db_session, item_a):
        result = app.test_cli_runner().invoke(args=["inventory", "recompute-status"])
        assert "PASS All inventory status tiers match" in result.output
