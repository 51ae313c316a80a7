# Overview: Pytest coverage for the health endpoint, CORS headers and CLI commands.

from pawnledger.models import AccessPin, Contract
from pawnledger.services.auth_service import authenticate_pin


class TestHealth:
    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "ok"
        assert body["database"]["status"] == "healthy"

    def test_allowed_origin_gets_cors_headers(self, client, db_session):
        resp = client.get("/health", headers={"Origin": "http://localhost:5173"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

    def test_unknown_origin_gets_nothing(self, client, db_session):
        resp = client.get("/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in resp.headers


class TestCli:
    def test_set_pin(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["auth", "set-pin", "--role", "staff", "--pin", "2468"])

        assert result.exit_code == 0
        assert "PASS PIN updated for STAFF" in result.output
        assert db_session.query(AccessPin).count() == 1
        assert authenticate_pin("2468") == "STAFF"

    def test_set_pin_bad_format(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["auth", "set-pin", "--role", "ADMIN", "--pin", "12"])

        assert result.exit_code == 1
        assert "FAIL" in result.output
        assert db_session.query(AccessPin).count() == 0

    def test_import_legacy(self, app, db_session, tmp_path):
        sheet = tmp_path / "deposits.csv"
        sheet.write_text(
            "ชื่อลูกค้า,วันที่ฝาก,ครบรอบ,ราคา,ดอก/15 วัน\n"
            "Somchai,01/03/2567,16/03/2567,6000,450\n"
            "Nok,01/03/2567,,1000,50\n"
            "ยอดรวม,,,7000,\n",
            encoding="utf-8-sig",
        )
        runner = app.test_cli_runner()

        dry = runner.invoke(args=["contracts", "import-legacy", str(sheet), "--dry-run"])
        assert dry.exit_code == 0
        assert "WOULD IMPORT 1 contract(s)" in dry.output
        assert "SKIP line 3" in dry.output
        assert db_session.query(Contract).count() == 0

        real = runner.invoke(args=["contracts", "import-legacy", str(sheet)])
        assert real.exit_code == 0
        assert "PASS Imported 1 contract(s)" in real.output
        assert db_session.query(Contract).one().code == "DEP-2024-001"
