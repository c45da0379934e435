"""
Cart ledger and pricing.

Pricing (all Decimal, recomputed on every read):
  subtotal          = sum(price * quantity)
  discount_amount   = subtotal * discount_rate
  subtotal_after    = subtotal - discount_amount
  shipping          = 0 if subtotal_after > threshold else flat rate
  total             = subtotal_after + shipping

The free-shipping comparison is strict: a discounted subtotal of exactly the
threshold still pays shipping.
"""
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple, Union

from storefront.core.config import StorefrontConfig
from storefront.data.models import Product
from storefront.utils.logger import get_logger

logger = get_logger("cart.ledger")

Rate = Union[Decimal, float, int, str]


@dataclass(frozen=True)
class ShippingPolicy:
    free_shipping_threshold: Decimal = Decimal("400")
    flat_shipping_rate: Decimal = Decimal("50")

    @classmethod
    def from_config(cls, config: StorefrontConfig) -> "ShippingPolicy":
        return cls(
            free_shipping_threshold=config.free_shipping_threshold,
            flat_shipping_rate=config.flat_shipping_rate,
        )

    def shipping_for(self, amount: Decimal) -> Decimal:
        return Decimal("0") if amount > self.free_shipping_threshold else self.flat_shipping_rate


@dataclass(frozen=True)
class CartItem:
    product: Product
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.product.price * self.quantity


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    discount_rate: Decimal
    discount_amount: Decimal
    subtotal_after_discount: Decimal
    shipping: Decimal
    total: Decimal

    @property
    def free_shipping(self) -> bool:
        return self.shipping == 0


def _to_rate(rate: Rate) -> Decimal:
    value = rate if isinstance(rate, Decimal) else Decimal(str(rate))
    if not Decimal("0") <= value <= Decimal("1"):
        raise ValueError(f"discount rate must be within [0, 1], got {rate}")
    return value


def compute_totals(items: Iterable[CartItem], discount_rate: Decimal, policy: ShippingPolicy) -> CartTotals:
    """Derive cart totals from items, the cart-wide discount rate and the shipping policy."""
    subtotal = sum((item.line_total for item in items), Decimal("0"))
    discount_amount = subtotal * discount_rate
    subtotal_after = subtotal - discount_amount
    shipping = policy.shipping_for(subtotal_after)
    return CartTotals(
        subtotal=subtotal,
        discount_rate=discount_rate,
        discount_amount=discount_amount,
        subtotal_after_discount=subtotal_after,
        shipping=shipping,
        total=subtotal_after + shipping,
    )


class CartLedger:
    """
    Ordered cart items plus one cart-wide discount rate.

    At most one item per product id; a quantity that drops to zero or below
    removes the item instead of being stored. Mutations never raise on bad
    quantities or unknown ids; they are ignored or treated as removal.
    """

    def __init__(self, policy: Optional[ShippingPolicy] = None):
        self.policy = policy or ShippingPolicy()
        self._items: List[CartItem] = []
        self._discount_rate = Decimal("0")

    @property
    def items(self) -> Tuple[CartItem, ...]:
        return tuple(self._items)

    @property
    def discount_rate(self) -> Decimal:
        return self._discount_rate

    @property
    def item_count(self) -> int:
        """Total units in the cart (cart badge)."""
        return sum(item.quantity for item in self._items)

    @property
    def is_empty(self) -> bool:
        return not self._items

    def _index(self, product_id: str) -> Optional[int]:
        for i, item in enumerate(self._items):
            if item.product.id == product_id:
                return i
        return None

    def get_item(self, product_id: str) -> Optional[CartItem]:
        index = self._index(product_id)
        return self._items[index] if index is not None else None

    def add_item(self, product: Product, quantity: int) -> None:
        """Add units of a product; an existing line is incremented, not overwritten."""
        if quantity < 1:
            logger.warning(f"Ignoring add of {quantity} x '{product.id}'")
            return

        index = self._index(product.id)
        if index is None:
            self._items.append(CartItem(product=product, quantity=quantity))
        else:
            current = self._items[index]
            self._items[index] = replace(current, quantity=current.quantity + quantity)
        logger.info(f"Added {quantity} x '{product.id}' (cart units: {self.item_count})")

    def add_many(self, products: Iterable[Product], discount_rate: Rate) -> None:
        """
        Bulk commit: one unit per product, then set the cart-wide discount.

        The discount overwrites any previous rate. An out-of-range rate raises
        ValueError before the cart is touched.
        """
        rate = _to_rate(discount_rate)
        products = list(products)
        for product in products:
            index = self._index(product.id)
            if index is None:
                self._items.append(CartItem(product=product, quantity=1))
            else:
                current = self._items[index]
                self._items[index] = replace(current, quantity=current.quantity + 1)
        self._discount_rate = rate
        logger.info(f"Bulk-added {len(products)} products with discount rate {rate}")

    def update_quantity(self, product_id: str, new_quantity: int) -> None:
        """Set an absolute quantity; zero or less removes the item. Unknown ids are ignored."""
        if new_quantity <= 0:
            self.remove_item(product_id)
            return

        index = self._index(product_id)
        if index is None:
            logger.debug(f"Ignoring quantity update for unknown product '{product_id}'")
            return
        self._items[index] = replace(self._items[index], quantity=new_quantity)

    def remove_item(self, product_id: str) -> None:
        """Remove a product's line; no-op if absent."""
        self._items = [item for item in self._items if item.product.id != product_id]

    def reset_discount(self) -> None:
        if self._discount_rate:
            logger.info("Discount reset")
        self._discount_rate = Decimal("0")

    def totals(self) -> CartTotals:
        return compute_totals(self._items, self._discount_rate, self.policy)
