import pytest

from beacon.app import create_app


@pytest.fixture()
def db_path(tmp_path):
    return tmp_path / "db" / "analytics.sqlite3"


@pytest.fixture()
def app(db_path):
    app = create_app({
        'TESTING': True,
        'DATABASE_PATH': str(db_path),
    })
    yield app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def store(app):
    with app.app_context():
        yield app.extensions['pageview_store']
