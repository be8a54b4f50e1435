import pytest

from laundry_dispatch.db import build_engine, build_session_factory, init_db


@pytest.fixture
def session_factory():
    engine = build_engine("sqlite://")
    init_db(engine)
    yield build_session_factory(engine)
    engine.dispose()
