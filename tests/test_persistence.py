import json

import pytest

from waiter_pos.core.db import init_db, setting_get, setting_set
from waiter_pos.core.errors import PersistenceFailure
from waiter_pos.services import orders, state_store
from waiter_pos.services.kitchen import TicketStatus
from waiter_pos.services.menu import Category
from waiter_pos.services.orders import OrderManager, TableState, get_order_manager


def _stored():
    return json.loads(setting_get(state_store.STATE_KEY))


def test_first_load_writes_full_document(manager):
    doc = _stored()
    assert set(doc) == set(state_store.STATE_FIELDS)
    assert len(doc["menu"]["drinks"]) == 4
    assert doc["tableStatus"] == {}
    assert doc["lastResetDate"] is not None


def test_round_trip_of_orders_tickets_and_bills(manager):
    manager.add_item(9, table=1)
    manager.send_to_kitchen(1)
    manager.initiate_vacation(1)
    bill = manager.confirm_vacation()
    manager.add_item(5, table=2)
    ticket = manager.send_to_kitchen(2)
    manager.advance_status(ticket.id, "preparing")
    manager.add_item(13, table=3)

    reloaded = OrderManager(table_count=8).load()

    assert reloaded.get_bill(bill.id) == bill
    assert reloaded.ticket(ticket.id) == manager.ticket(ticket.id)
    assert [i.id for i in reloaded.draft_items(3)] == [13]
    before, after = manager.to_document(), reloaded.to_document()
    assert before.pop("tableStatus") == {"1": "active"}
    assert after.pop("tableStatus") == {}
    assert after == before


def test_later_stamps_stay_above_stored_ids(manager):
    manager.add_item(9, table=1)
    first = manager.send_to_kitchen(1)
    reloaded = OrderManager(table_count=8).load()
    reloaded.add_item(9, table=1)
    assert reloaded.send_to_kitchen(1).id > first.id


def test_vacated_flags_dropped_on_load(manager):
    doc = _stored()
    doc["tableStatus"] = {"3": "vacated"}
    setting_set(state_store.STATE_KEY, json.dumps(doc))

    reloaded = OrderManager(table_count=8).load()
    assert reloaded.table_state(3) is TableState.ACTIVE


def test_corrupt_document_falls_back_to_defaults():
    init_db()
    setting_set(state_store.STATE_KEY, "{not json")

    fresh = OrderManager(table_count=8).load()

    assert fresh.menu_item(9).name == "Coke"
    assert fresh.tickets() == []
    assert _stored()["ownerBills"] == []


def test_document_with_bad_shape_keeps_defaults():
    init_db()
    raw = json.dumps({"kitchenOrders": [{"table": 1}], "menu": {}})
    setting_set(state_store.STATE_KEY, raw)

    fresh = OrderManager(table_count=8).load()

    assert fresh.tickets() == []
    assert fresh.menu_item(1).name == "Chicken Wings"
    assert setting_get(state_store.STATE_KEY) == raw


def test_unreadable_bill_does_not_wipe_the_ledger(manager):
    for _ in range(3):
        manager.add_item(9, table=1)
        manager.send_to_kitchen(1)
        manager.initiate_vacation(1)
        manager.confirm_vacation()
    doc = _stored()
    doc["ownerBills"][0]["timestamp"] = "yesterday evening"
    setting_set(state_store.STATE_KEY, json.dumps(doc))

    reloaded = OrderManager(table_count=8).load()

    assert [b.id for b in reloaded.bills()] == [b["id"] for b in reversed(doc["ownerBills"][1:])]
    assert len(_stored()["ownerBills"]) == 3
    assert reloaded.menu_item(9).name == "Coke"


def test_unreadable_section_keeps_the_others(manager):
    manager.add_item(5, table=2)
    ticket = manager.send_to_kitchen(2)
    manager.toggle_availability(4)
    doc = _stored()
    doc["currentOrders"] = ["not", "a", "mapping"]
    doc["menu"]["drinks"].append({"name": "No id"})
    setting_set(state_store.STATE_KEY, json.dumps(doc))

    reloaded = OrderManager(table_count=8).load()

    assert reloaded.ticket(ticket.id) == ticket
    assert not reloaded.is_available(4)
    assert len(reloaded.menu()[Category.DRINKS]) == 4
    assert _stored()["currentOrders"] == ["not", "a", "mapping"]

    reloaded.add_item(1, table=3)
    assert _stored()["currentOrders"] == {"3": {"table": 3, "items": [reloaded.menu_item(1).as_dict()]}}


def test_parse_rows_skips_bad_records():
    rows, skipped = state_store.parse_rows([{"v": "1"}, {"v": "x"}, "junk", {}], lambda r: int(r["v"]), "number")
    assert rows == [1]
    assert skipped == 3
    assert state_store.parse_rows(None, int, "number") == ([], 0)
    with pytest.raises(TypeError):
        state_store.parse_rows({"v": 1}, int, "number")


def test_legacy_document_loads():
    init_db()
    legacy = {
        "currentOrders": {"2": {"items": [{"id": 9, "name": "Coke", "price": 60, "category": "drinks"}]}},
        "kitchenOrders": [
            {
                "id": 1700000000000,
                "table": 2,
                "items": [{"id": 1, "name": "Chicken Wings", "price": 180, "category": "starters"}],
                "timestamp": 1700000000000,
            }
        ],
        "ownerBills": [],
        "unavailableItems": [],
        "lastResetDate": None,
        "menu": None,
    }
    setting_set(state_store.STATE_KEY, json.dumps(legacy))

    loaded = OrderManager(table_count=8).load()

    assert loaded.ticket(1700000000000).status is TicketStatus.PENDING
    assert [i.name for i in loaded.draft_items(2)] == ["Coke"]
    assert loaded.menu_item(16) is not None


def test_save_failure_keeps_memory_state(manager, events, monkeypatch):
    def _broken(document):
        raise PersistenceFailure("disk full")

    monkeypatch.setattr(orders, "save_state", _broken)
    manager.add_item(9, table=1)

    assert [i.id for i in manager.draft_items(1)] == [9]
    assert ("persistence_failed", ("disk full",)) in events


def test_theme_is_stored_separately(manager):
    assert manager.theme() == "normal"
    assert manager.set_theme(" dark ") == "dark"
    assert manager.theme() == "dark"
    assert "theme" not in _stored()


def test_shared_manager_is_loaded_once():
    first = get_order_manager()
    assert get_order_manager() is first
    assert first.menu_item(9) is not None
