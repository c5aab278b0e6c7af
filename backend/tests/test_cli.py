from posledger.extensions import db
from posledger.models import Product, User


def test_seed_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["db", "seed"])
    second = runner.invoke(args=["db", "seed"])

    assert "PASS Seeded 6 products" in first.output
    assert "PASS Seeded 0 products, 0 customers, 0 users" in second.output
    assert db.session.query(Product).count() == 6
    assert db.session.query(User).count() == 2


def test_catalog_list_low_stock(app, db_session):
    runner = app.test_cli_runner()
    runner.invoke(args=["db", "seed"])

    result = runner.invoke(args=["catalog", "list", "--low-stock", "2"])

    assert "Notebook Set" in result.output
    assert "iPhone" not in result.output


def test_reports_sales_rejects_bad_dates(app, db_session):
    result = app.test_cli_runner().invoke(args=["reports", "sales", "--start", "last week"])
    assert result.exit_code == 1
    assert "FAIL" in result.output


def test_reset_requires_confirmation(app, db_session):
    result = app.test_cli_runner().invoke(args=["db", "reset"])
    assert result.exit_code == 1
