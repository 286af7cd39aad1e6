"""Repository layer – all database access goes through here.

Repositories encapsulate SQLAlchemy queries so that the service layer
only contains business logic.
"""

from salesops.repositories.appointment_repository import AppointmentRepository
from salesops.repositories.contact_repository import ContactRepository
from salesops.repositories.closer_repository import CloserRepository
from salesops.repositories.sale_repository import SaleRepository
from salesops.repositories.commission_repository import CommissionRepository
from salesops.repositories.unmatched_payment_repository import (
    UnmatchedPaymentRepository,
)
from salesops.repositories.metrics_repository import MetricsRepository

__all__ = [
    "AppointmentRepository",
    "ContactRepository",
    "CloserRepository",
    "SaleRepository",
    "CommissionRepository",
    "UnmatchedPaymentRepository",
    "MetricsRepository",
]
