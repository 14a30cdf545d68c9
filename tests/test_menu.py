import pytest

from waiter_pos.core.errors import AdminRequired, InvalidItem
from waiter_pos.services.menu import Category, MenuCatalog, MenuItem, default_menu
from factories import MenuItemFactory


def test_default_menu_seeded_on_first_load(manager):
    menu = manager.menu()
    assert set(menu) == {Category.STARTERS, Category.MAIN, Category.DRINKS, Category.DESSERTS}
    assert sum(len(rows) for rows in menu.values()) == 16
    coke = manager.menu_item(9)
    assert coke.name == "Coke"
    assert coke.price == 60
    assert coke.category is Category.DRINKS


def test_catalog_next_id_follows_highest_id():
    catalog = MenuCatalog(default_menu())
    item = catalog.add("Masala Dosa", 150, Category.MAIN)
    assert item.id == 17
    assert catalog.get(17) == item


def test_catalog_rejects_bad_input():
    catalog = MenuCatalog()
    with pytest.raises(ValueError):
        catalog.add("   ", 100, Category.MAIN)
    with pytest.raises(ValueError):
        catalog.add("Soup", -5, Category.STARTERS)
    with pytest.raises(ValueError):
        catalog.add("Tip", 10, Category.CUSTOM)


def test_find_by_name_is_case_insensitive():
    catalog = MenuCatalog({Category.DRINKS: [MenuItemFactory(name="Cold Coffee", category=Category.DRINKS)]})
    assert catalog.find_by_name("  cold COFFEE ").name == "Cold Coffee"
    assert catalog.find_by_name("") is None


def test_search_matches_substrings(manager):
    names = [item.name for item in manager.search_menu("paneer")]
    assert names == ["Paneer Tikka", "Paneer Butter Masala"]


def test_add_and_edit_menu_item_persist(manager):
    item = manager.add_menu_item("Veg Soup", 90, "starters")
    manager.edit_menu_item(item.id, "Tomato Soup", 95)

    reloaded = type(manager)(table_count=8).load()
    edited = reloaded.menu_item(item.id)
    assert edited.name == "Tomato Soup"
    assert edited.price == 95
    assert edited.category is Category.STARTERS


def test_edit_unknown_item_raises(manager):
    with pytest.raises(InvalidItem):
        manager.edit_menu_item(999, "Ghost", 10)


def test_delete_menu_item_needs_admin(manager, admin):
    with pytest.raises(AdminRequired):
        manager.delete_menu_item(1, None)
    removed = manager.delete_menu_item(1, admin)
    assert removed.name == "Chicken Wings"
    assert manager.menu_item(1) is None


def test_menu_item_round_trip_keeps_unknown_category_as_custom():
    item = MenuItem.from_dict({"id": 5, "name": "Mystery", "price": 40, "category": "brunch"})
    assert item.category is Category.CUSTOM
    assert MenuItem.from_dict(item.as_dict()) == item
