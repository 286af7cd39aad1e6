"""API-layer dependency functions.

Re-exports all dependency factories from ``salesops.dependencies`` so that
endpoint modules only need to import from ``salesops.api.deps``.
"""

from salesops.dependencies import (
    # Repository factories
    get_appointment_repo,
    get_contact_repo,
    get_closer_repo,
    get_sale_repo,
    get_commission_repo,
    get_unmatched_repo,
    get_metrics_repo,
    get_session_factory,
    # Service factories
    get_cache_service,
    get_metrics_service,
    get_reconciler,
    get_payment_matcher,
    get_commission_service,
    get_payment_ingestion_service,
    get_appointment_service,
    # Redis
    get_redis_client,
    # Webhook auth
    verify_webhook_secret,
)

__all__ = [
    "get_appointment_repo",
    "get_contact_repo",
    "get_closer_repo",
    "get_sale_repo",
    "get_commission_repo",
    "get_unmatched_repo",
    "get_metrics_repo",
    "get_session_factory",
    "get_cache_service",
    "get_metrics_service",
    "get_reconciler",
    "get_payment_matcher",
    "get_commission_service",
    "get_payment_ingestion_service",
    "get_appointment_service",
    "get_redis_client",
    "verify_webhook_secret",
]
