from shiftpay.models.user import User

__all__ = ["User"]
