from retailpay.schemas.order import Customer, Order, OrderPayment, Shop

__all__ = [
    "Customer",
    "Order",
    "OrderPayment",
    "Shop",
]
