import pytest

from waiter_pos.core import db, paths
from waiter_pos.core.auth import authenticate
from waiter_pos.core.bus import EVENTS, bus
from waiter_pos.services.orders import OrderManager, reset_order_manager


@pytest.fixture(autouse=True)
def storage(tmp_path, monkeypatch):
    monkeypatch.setenv("WAITER_POS_DATA_ROOT", str(tmp_path))
    original = paths.BASE_DIR
    db.close_engine()
    paths.use_base_dir(tmp_path)
    bus.clear()
    reset_order_manager()
    yield tmp_path
    db.close_engine()
    bus.clear()
    reset_order_manager()
    paths.use_base_dir(original)


@pytest.fixture
def manager():
    return OrderManager(table_count=8).load()


@pytest.fixture
def admin():
    return authenticate("admin123")


@pytest.fixture
def events():
    """Record every emitted event name with its arguments."""
    seen = []

    def _recorder(name):
        def _record(*args):
            seen.append((name, args))

        return _record

    for name in EVENTS:
        bus.subscribe(name, _recorder(name))
    return seen
