# -*- coding: utf-8 -*-
# SPDX-License-Identifier: MIT
import pytest
from sqlalchemy.orm import Session

from tests import app, db, init_data


@pytest.fixture(autouse=True)
def app_context():
    """ Every test runs within an app context against an empty database. """
    with app.app_context():
        init_data()
        yield
        db.session.remove()


@pytest.fixture()
def db_session():
    return db.session


@pytest.fixture()
def other_session():
    """ A second, independent session, as another request would have. """
    session = Session(bind=db.engine)
    yield session
    session.close()
