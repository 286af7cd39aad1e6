from salesops.models.base import Base
from salesops.models.company import Company
from salesops.models.closer import Closer, CommissionRole
from salesops.models.contact import Contact
from salesops.models.appointment import Appointment
from salesops.models.sale import Sale
from salesops.models.commission import Commission
from salesops.models.unmatched_payment import UnmatchedPayment

# Import event listeners to register them
from salesops.models import listeners  # noqa: F401

__all__ = [
    "Base",
    "Company",
    "Closer",
    "CommissionRole",
    "Contact",
    "Appointment",
    "Sale",
    "Commission",
    "UnmatchedPayment",
]
