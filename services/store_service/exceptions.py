"""Store-domain failures. Each is rendered as ``{kind, message}``."""

from typing import Optional

from libs.common.errors import ServiceError


class CartError(ServiceError):
    default_kind = "cart_error"

    @classmethod
    def product_not_found(cls, message: str = "Product not found") -> "CartError":
        return cls(message, kind="product_not_found", status_code=404)

    @classmethod
    def variant_not_found(
        cls, message: str = "Product variant not found"
    ) -> "CartError":
        return cls(message, kind="variant_not_found", status_code=404)

    @classmethod
    def variant_selection_required(
        cls, message: str = "Please select a color and/or size for this product"
    ) -> "CartError":
        return cls(message, kind="variant_selection_required")

    @classmethod
    def invalid_quantity(cls, message: str = "Invalid quantity") -> "CartError":
        return cls(message, kind="invalid_quantity")

    @classmethod
    def item_not_found(cls, message: str = "Item not found in cart") -> "CartError":
        return cls(message, kind="item_not_found", status_code=404)


class InsufficientStockError(ServiceError):
    """Carries the exact numbers so the shopper can adjust the quantity."""

    status_code = 409
    default_kind = "insufficient_stock"

    def __init__(self, product_name: str, requested: int, available: int):
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Not enough stock for '{product_name}'. "
            f"Requested: {requested}, available: {available}"
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update(
            product_name=self.product_name,
            requested=self.requested,
            available=self.available,
        )
        return data


class InvalidDiscountCodeError(ServiceError):
    default_kind = "invalid_discount_code"

    @classmethod
    def not_found(cls) -> "InvalidDiscountCodeError":
        return cls("Discount code not found", kind="discount_code_not_found")

    @classmethod
    def inactive(cls) -> "InvalidDiscountCodeError":
        return cls("This discount code is not active", kind="discount_code_inactive")

    @classmethod
    def not_started(cls) -> "InvalidDiscountCodeError":
        return cls(
            "This discount code is not valid yet", kind="discount_code_not_started"
        )

    @classmethod
    def expired(cls) -> "InvalidDiscountCodeError":
        return cls("This discount code has expired", kind="discount_code_expired")

    @classmethod
    def usage_limit_exceeded(cls) -> "InvalidDiscountCodeError":
        return cls(
            "This discount code has reached its usage limit",
            kind="discount_code_usage_limit_reached",
        )

    @classmethod
    def minimum_amount_not_met(cls, min_amount: int) -> "InvalidDiscountCodeError":
        return cls(
            f"A minimum order amount of {min_amount} is required for this code",
            kind="discount_code_minimum_not_met",
        )

    @classmethod
    def already_used(cls) -> "InvalidDiscountCodeError":
        return cls(
            "You have already used this discount code",
            kind="discount_code_already_used",
        )


class OrderError(ServiceError):
    default_kind = "order_error"

    @classmethod
    def empty_cart(cls, message: str = "Your cart is empty") -> "OrderError":
        return cls(message, kind="empty_cart")

    @classmethod
    def invalid_cart(
        cls, message: str = "Your cart contains no purchasable items"
    ) -> "OrderError":
        return cls(message, kind="invalid_cart")

    @classmethod
    def delivery_method_not_found(
        cls, delivery_method_id: Optional[int] = None
    ) -> "OrderError":
        return cls(
            f"Delivery method {delivery_method_id} not found",
            kind="delivery_method_not_found",
            status_code=404,
        )

    @classmethod
    def not_found(cls, message: str = "Order not found") -> "OrderError":
        return cls(message, kind="order_not_found", status_code=404)

    @classmethod
    def cannot_cancel(
        cls, message: str = "This order can no longer be cancelled"
    ) -> "OrderError":
        return cls(message, kind="cannot_cancel", status_code=409)
