"""Pytest fixtures for zakat engine tests."""
import pytest

from zakat_engine import create_app
from zakat_engine.services.fx import RateTable
from zakat_engine.services.nisab import MetalPrices


# Gold at $93.98/g puts the gold nisab at 85 * 93.98 = 7988.30 USD
GOLD_PRICE_USD = 93.98
SILVER_PRICE_USD = 1.05


@pytest.fixture
def app(monkeypatch):
    """Create application for testing.

    Engine environment variables are cleared so the defaults apply.

    Yields:
        Flask application configured for testing.
    """
    for name in (
        'ZAKAT_DEFAULT_CURRENCY',
        'ZAKAT_NISAB_BASIS',
        'ZAKAT_ELIGIBILITY_POLICY',
        'ZAKAT_INCLUDE_UNCERTAIN_RECEIVABLES',
        'ZAKAT_SCHOLAR_WEIGHTS',
    ):
        monkeypatch.delenv(name, raising=False)
    app = create_app({'TESTING': True})
    yield app


@pytest.fixture
def client(app):
    """Create test client.

    Args:
        app: Flask application fixture.

    Yields:
        Flask test client for making requests.
    """
    with app.test_client() as client:
        yield client


@pytest.fixture
def runner(app):
    """CLI runner bound to the test app."""
    return app.test_cli_runner()


@pytest.fixture
def rate_table():
    """USD-based rate table with a few common currencies."""
    return RateTable(base_currency='usd', rates={
        'eur': 0.92,
        'gbp': 0.79,
        'cad': 1.38,
        'bdt': 110.0,
    })


@pytest.fixture
def metal_prices():
    """Gold and silver spot prices per gram in USD."""
    return MetalPrices(gold=GOLD_PRICE_USD, silver=SILVER_PRICE_USD, currency='usd', source='test')
