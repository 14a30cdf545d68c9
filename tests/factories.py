from datetime import datetime

import factory

from waiter_pos.services.billing import Bill, BillLine
from waiter_pos.services.kitchen import KitchenTicket, TicketStatus
from waiter_pos.services.menu import Category, MenuItem


class MenuItemFactory(factory.Factory):
    class Meta:
        model = MenuItem

    id = factory.Sequence(lambda n: 100 + n)
    name = factory.Sequence(lambda n: f"Dish {n}")
    price = 100
    category = Category.MAIN


class KitchenTicketFactory(factory.Factory):
    class Meta:
        model = KitchenTicket

    id = factory.Sequence(lambda n: 1_700_000_000_000 + n)
    table = 1
    items = factory.LazyFunction(lambda: (MenuItemFactory(),))
    timestamp = factory.LazyFunction(lambda: datetime.now().astimezone())
    status = TicketStatus.PENDING


class BillLineFactory(factory.Factory):
    class Meta:
        model = BillLine

    item = factory.SubFactory(MenuItemFactory)
    quantity = 1


class BillFactory(factory.Factory):
    class Meta:
        model = Bill

    id = factory.Sequence(lambda n: 1_800_000_000_000 + n)
    table = 1
    timestamp = factory.LazyFunction(lambda: datetime.now().astimezone())
    lines = factory.LazyFunction(lambda: (BillLineFactory(),))
    grand_total = factory.LazyAttribute(lambda o: sum(line.total for line in o.lines))
    tickets = ()
