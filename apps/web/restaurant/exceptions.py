"""Order lifecycle exceptions.

Each error carries a human-readable message that is safe to show to callers
and the HTTP status the API answers with.
"""


class OrderingError(Exception):
    """Base exception for rejected lifecycle commands."""

    status_code = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class EmptyCartError(OrderingError):
    """No line items could be resolved at placement time."""

    def __init__(self, message: str = "No items provided or cart is empty") -> None:
        super().__init__(message)


class NoUnpaidOrdersError(OrderingError):
    """The payment request selected no unpaid orders."""

    def __init__(
        self, message: str = "No unpaid orders to request payment for"
    ) -> None:
        super().__init__(message)


class NothingToMergeError(OrderingError):
    """The session has no un-merged adhoc orders."""

    def __init__(self, session_ref: str) -> None:
        super().__init__(f"No adhoc orders left to merge for session {session_ref}")
        self.session_ref = session_ref


class InvalidSelectorError(OrderingError):
    """A command is missing the selector it needs to find its orders."""


class InvalidTransitionError(OrderingError):
    """Kitchen status cannot move from the current state to the requested one."""

    status_code = 409

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Cannot move order from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


class NotFoundError(OrderingError):
    """Referenced order does not exist."""

    status_code = 404

    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id
