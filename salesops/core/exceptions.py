class SalesOpsError(Exception):
    """Base class for all SalesOps domain exceptions.

    Every custom exception in this module inherits from here so that a
    single ``except SalesOpsError`` clause can catch any domain error.
    """

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(detail)


class AppointmentNotFoundError(SalesOpsError):
    """Raised when a requested appointment does not exist in the tenant."""

    def __init__(self, detail: str = "Appointment not found"):
        super().__init__(detail)


class ContactNotFoundError(SalesOpsError):
    """Raised when a requested contact does not exist in the tenant."""

    def __init__(self, detail: str = "Contact not found"):
        super().__init__(detail)


class CommissionNotFoundError(SalesOpsError):
    """Raised when a requested commission does not exist in the tenant."""

    def __init__(self, detail: str = "Commission not found"):
        super().__init__(detail)


class UnmatchedPaymentNotFoundError(SalesOpsError):
    """Raised when an unmatched payment awaiting review does not exist."""

    def __init__(self, detail: str = "Unmatched payment not found"):
        super().__init__(detail)


class PaymentAlreadyMatchedError(SalesOpsError):
    """Raised when a reviewer tries to match a payment that was already resolved."""

    def __init__(self, detail: str = "Payment has already been reviewed"):
        super().__init__(detail)


class InvalidAppointmentDataError(SalesOpsError):
    """Raised when appointment data is invalid."""

    def __init__(self, detail: str = "Invalid appointment data"):
        super().__init__(detail)


class InvalidCommissionInputError(SalesOpsError):
    """Raised when commission inputs fail boundary validation.

    The commission arithmetic itself never raises; callers validate
    ``sale_amount > 0`` and ``0 <= rate <= 1`` before invoking it.
    """

    def __init__(self, detail: str = "Invalid commission input"):
        super().__init__(detail)


class CompanyResolutionError(SalesOpsError):
    """Raised when an incoming payment cannot be attributed to a company."""

    def __init__(self, detail: str = "Unable to determine company for payment"):
        super().__init__(detail)


class InvalidWebhookSecretError(SalesOpsError):
    """Raised when the payment webhook shared secret does not match."""

    def __init__(self, detail: str = "Invalid webhook secret"):
        super().__init__(detail)


class InvalidPaymentDataError(SalesOpsError):
    """Raised when a payment webhook lacks a processor, payment id or usable amount."""

    def __init__(self, detail: str = "Invalid payment data"):
        super().__init__(detail)
