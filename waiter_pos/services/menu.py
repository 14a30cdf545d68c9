"""Menu catalog: categories of priced items, edited through the manager."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Iterator, List, Optional


class Category(str, Enum):
    STARTERS = "starters"
    MAIN = "main"
    DRINKS = "drinks"
    DESSERTS = "desserts"
    CUSTOM = "custom"  # bill-only lines that never lived in the catalog


CATALOG_CATEGORIES = (Category.STARTERS, Category.MAIN, Category.DRINKS, Category.DESSERTS)


@dataclass(slots=True, frozen=True)
class MenuItem:
    id: int
    name: str
    price: int
    category: Category
    image: Optional[str] = None

    @classmethod
    def custom(cls, item_id: int, name: str, price: int) -> "MenuItem":
        return cls(id=item_id, name=name, price=price, category=Category.CUSTOM)

    def as_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "category": self.category.value,
        }
        if self.image:
            data["image"] = self.image
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "MenuItem":
        try:
            category = Category(data.get("category") or Category.MAIN.value)
        except ValueError:
            category = Category.CUSTOM
        return cls(
            id=int(data["id"]),
            name=str(data["name"]),
            price=int(data.get("price") or 0),
            category=category,
            image=data.get("image") or None,
        )


_DEFAULT_MENU = {
    Category.STARTERS: [
        (1, "Chicken Wings", 180),
        (2, "Paneer Tikka", 160),
        (3, "Spring Rolls", 120),
        (4, "Garlic Bread", 100),
    ],
    Category.MAIN: [
        (5, "Butter Chicken", 280),
        (6, "Paneer Butter Masala", 240),
        (7, "Biryani", 220),
        (8, "Pasta Alfredo", 200),
    ],
    Category.DRINKS: [
        (9, "Coke", 60),
        (10, "Fresh Lime Soda", 50),
        (11, "Mango Lassi", 80),
        (12, "Coffee", 70),
    ],
    Category.DESSERTS: [
        (13, "Ice Cream", 90),
        (14, "Gulab Jamun", 70),
        (15, "Brownie", 110),
        (16, "Fruit Salad", 100),
    ],
}


def default_menu() -> Dict[Category, List[MenuItem]]:
    return {
        category: [MenuItem(id=i, name=name, price=price, category=category) for i, name, price in rows]
        for category, rows in _DEFAULT_MENU.items()
    }


def _clean_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValueError("Item name is required")
    return cleaned


def _clean_price(price) -> int:
    try:
        value = int(price)
    except (TypeError, ValueError):
        raise ValueError("Price must be a whole number") from None
    if value < 0:
        raise ValueError("Price cannot be negative")
    return value


class MenuCatalog:
    __slots__ = ("_items",)

    def __init__(self, items: Optional[Dict[Category, List[MenuItem]]] = None):
        self._items: Dict[Category, List[MenuItem]] = {category: [] for category in CATALOG_CATEGORIES}
        for category, rows in (items or {}).items():
            self._items.setdefault(Category(category), []).extend(rows)

    def __iter__(self) -> Iterator[MenuItem]:
        for rows in self._items.values():
            yield from rows

    def is_empty(self) -> bool:
        return not any(self._items.values())

    def categories(self) -> Dict[Category, tuple]:
        return {category: tuple(rows) for category, rows in self._items.items()}

    def get(self, item_id: int) -> Optional[MenuItem]:
        for item in self:
            if item.id == item_id:
                return item
        return None

    def find_by_name(self, name: str) -> Optional[MenuItem]:
        wanted = (name or "").strip().lower()
        if not wanted:
            return None
        for item in self:
            if item.name.lower() == wanted:
                return item
        return None

    def search(self, text: str) -> List[MenuItem]:
        needle = (text or "").strip().lower()
        return [item for item in self if needle in item.name.lower()]

    def next_id(self) -> int:
        return max((item.id for item in self), default=0) + 1

    def add(self, name: str, price, category, image: Optional[str] = None) -> MenuItem:
        category = Category(category)
        if category is Category.CUSTOM:
            raise ValueError("Custom items cannot be added to the catalog")
        item = MenuItem(
            id=self.next_id(),
            name=_clean_name(name),
            price=_clean_price(price),
            category=category,
            image=(image or "").strip() or None,
        )
        self._items.setdefault(category, []).append(item)
        return item

    def update(self, item_id: int, name: str, price) -> Optional[MenuItem]:
        for rows in self._items.values():
            for idx, item in enumerate(rows):
                if item.id != item_id:
                    continue
                updated = replace(item, name=_clean_name(name), price=_clean_price(price))
                rows[idx] = updated
                return updated
        return None

    def remove(self, item_id: int) -> Optional[MenuItem]:
        for rows in self._items.values():
            for idx, item in enumerate(rows):
                if item.id == item_id:
                    return rows.pop(idx)
        return None

    def as_dict(self) -> dict:
        return {category.value: [item.as_dict() for item in rows] for category, rows in self._items.items()}
