import pytest

from waiter_pos.core.db import recent_actions
from waiter_pos.core.errors import AdminRequired, BillNotFound, InvalidItem
from waiter_pos.services.billing import BillLedger, group_units
from waiter_pos.services.menu import Category
from factories import BillFactory, BillLineFactory, MenuItemFactory


@pytest.fixture
def bill(manager):
    manager.add_item(9, table=1)
    manager.add_item(9, table=1)
    manager.add_item(5, table=1)
    manager.send_to_kitchen(1)
    manager.initiate_vacation(1)
    return manager.confirm_vacation()


def test_group_units_total_matches_lines():
    coke = MenuItemFactory(id=9, name="Coke", price=60)
    lines, total = group_units([coke, coke, coke])
    assert len(lines) == 1
    assert lines[0].quantity == 3
    assert total == lines[0].total == 180


def test_admin_ops_need_password(manager, bill):
    with pytest.raises(AdminRequired):
        manager.delete_bill(bill.id, None)
    with pytest.raises(AdminRequired):
        manager.delete_bill_item(bill.id, 0, None)
    with pytest.raises(AdminRequired):
        manager.add_item_to_bill(bill.id, 9, None)
    assert manager.get_bill(bill.id) == bill


def test_delete_bill(manager, bill, admin):
    manager.delete_bill(bill.id, admin)
    assert manager.bills() == []
    with pytest.raises(BillNotFound):
        manager.get_bill(bill.id)
    assert recent_actions(1)[0]["action"] == "delete_bill"


def test_delete_bill_item_subtracts_line_total(manager, bill, admin):
    updated = manager.delete_bill_item(bill.id, 0, admin)
    assert [line.item.name for line in updated.lines] == ["Butter Chicken"]
    assert updated.grand_total == 280


def test_delete_last_line_zeroes_total(manager, bill, admin):
    manager.delete_bill_item(bill.id, 1, admin)
    updated = manager.delete_bill_item(bill.id, 0, admin)
    assert updated.lines == ()
    assert updated.grand_total == 0


def test_delete_line_clamps_at_zero():
    line = BillLineFactory(item=MenuItemFactory(price=500), quantity=1)
    other = BillLineFactory(item=MenuItemFactory(price=10))
    ledger = BillLedger([BillFactory(id=1, lines=(line, other), grand_total=100)])
    assert ledger.delete_line(1, 0).grand_total == 0


def test_delete_bad_line_index(manager, bill, admin):
    with pytest.raises(BillNotFound):
        manager.delete_bill_item(bill.id, 7, admin)


def test_add_existing_item_increments_line(manager, bill, admin):
    updated = manager.add_item_to_bill(bill.id, "coke", admin)
    assert [(line.item.name, line.quantity) for line in updated.lines] == [("Coke", 3), ("Butter Chicken", 1)]
    assert updated.grand_total == 460


def test_add_item_by_numeric_id(manager, bill, admin):
    updated = manager.add_item_to_bill(bill.id, "13", admin)
    assert updated.lines[-1].item.name == "Ice Cream"
    assert updated.grand_total == bill.grand_total + 90


def test_add_custom_item(manager, bill, admin):
    updated = manager.add_item_to_bill(bill.id, "Birthday Cake", admin, price=350)
    line = updated.lines[-1]
    assert line.item.category is Category.CUSTOM
    assert line.total == 350
    assert manager.menu_item(17) is None

    again = manager.add_item_to_bill(bill.id, "Birthday Cake", admin, price=350)
    assert again.lines[-1].quantity == 2
    assert again.grand_total == bill.grand_total + 700


def test_add_custom_item_saved_to_menu(manager, bill, admin):
    manager.add_item_to_bill(bill.id, "Chef Special", admin, price=300, save_to_menu=True)
    saved = manager.menu_item(17)
    assert saved.name == "Chef Special"
    assert saved.category is Category.MAIN


def test_add_unknown_item_without_price(manager, bill, admin):
    with pytest.raises(InvalidItem):
        manager.add_item_to_bill(bill.id, "Mystery", admin)
    with pytest.raises(InvalidItem):
        manager.add_item_to_bill(bill.id, "Mystery", admin, price=-1)


def test_bill_edits_persist(manager, bill, admin):
    manager.add_item_to_bill(bill.id, 9, admin)
    reloaded = type(manager)(table_count=8).load()
    stored = reloaded.get_bill(bill.id)
    assert stored.grand_total == 460
    assert stored.lines[0].quantity == 3
    assert stored.timestamp == bill.timestamp
