import logging

import pytest

from repairflow import create_app
from repairflow.config import TestConfig
from repairflow.extensions import db


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def notifications(caplog):
    caplog.set_level(logging.INFO, logger="repairflow.notifications")
    return caplog
