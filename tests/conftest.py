import pytest

import app as app_module
import db as storage
from config import DEFAULT_ROOMS
from timetable import TimeTable


@pytest.fixture
def timetable():
    return TimeTable(rooms=list(DEFAULT_ROOMS))


@pytest.fixture
def new_tile(timetable):
    """Create a sidebar tile of `slots` half-hour slots on the shared timetable."""
    def make(course_name='Data Structures', section='CS 101', teacher='J. Reyes', slots=2, **kwargs):
        return timetable.store.create_tile(course_name=course_name, section=section, teacher=teacher,
                                           duration_minutes=slots * 30, **kwargs)
    return make


@pytest.fixture
def conn():
    db = storage.connect(':memory:')
    storage.init_db(db)
    db.execute("INSERT INTO users (email, password_hash) VALUES ('a@example.com', 'x')")
    db.commit()
    yield db
    db.close()


@pytest.fixture
def flask_app(tmp_path):
    app_module.app.config.update(TESTING=True, DATABASE=str(tmp_path / 'timetable.db'))
    app_module.init_db()
    return app_module.app


@pytest.fixture
def client(flask_app):
    with flask_app.test_client() as client:
        response = client.post('/auth/register', json={'email': 'teacher@example.com', 'password': 'secret123'})
        assert response.status_code == 201
        yield client
