from retailpay.services import payment_events

__all__ = [
    "payment_events",
]
