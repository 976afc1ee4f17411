"""
Shopping cart held locally by the client.

Not synchronized with the remote store and not scoped to a session: items
live only as long as the Cart object. Adding an item whose id is already in
the cart is a no-op.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Tuple


@dataclass(frozen=True)
class CartItem:
    id: str
    title: str
    instructor: str
    price: Decimal
    original_price: Decimal
    image: str = ""


class Cart:
    def __init__(self) -> None:
        self._items: List[CartItem] = []

    @property
    def items(self) -> Tuple[CartItem, ...]:
        return tuple(self._items)

    def add_item(self, item: CartItem) -> bool:
        """Append `item`; returns False when an item with the same id is present."""
        if any(i.id == item.id for i in self._items):
            return False
        self._items.append(item)
        return True

    def remove_item(self, item_id: str) -> None:
        self._items = [i for i in self._items if i.id != item_id]

    def clear(self) -> None:
        self._items = []

    def contains(self, item_id: str) -> bool:
        return any(i.id == item_id for i in self._items)

    @property
    def total(self) -> Decimal:
        return sum((Decimal(i.price) for i in self._items), Decimal("0"))

    @property
    def item_count(self) -> int:
        return len(self._items)


__all__ = ["CartItem", "Cart"]
