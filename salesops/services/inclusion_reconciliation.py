import asyncio
import logging
from typing import Callable, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from salesops.core.config import settings
from salesops.repositories.appointment_repository import AppointmentRepository
from salesops.services.inclusion_flag import (
    InclusionFlagCalculator,
    compute_inclusion_flag,
)
from salesops.services.metrics import MetricsService

logger = logging.getLogger(__name__)

# Progress is logged every time this many appointments have been queued
_PROGRESS_LOG_EVERY: int = 1000


class InclusionReconciler:
    """Keeps inclusion flags in step with the appointments they derive from.

    A contact's flags depend on all of its appointments, so any create,
    reschedule, cancellation or outcome change recomputes every sibling,
    not only the mutated row.  There is no lock around a contact: two
    concurrent runs may interleave, and running again converges.
    """

    def __init__(
        self,
        calculator: Optional[InclusionFlagCalculator] = None,
        metrics: Optional[MetricsService] = None,
    ) -> None:
        self._calculator = calculator or InclusionFlagCalculator()
        self._metrics = metrics or MetricsService()

    async def recalculate_contact_inclusion_flags(
        self,
        contact_id: UUID,
        company_id: UUID,
        appointment_repo: AppointmentRepository,
    ) -> Dict[UUID, Optional[int]]:
        """Recompute and stage the flag of every appointment of a contact.

        All siblings are read once and each flag is computed against that
        snapshot.  Only changed values are written; the caller owns the
        commit and calls :meth:`invalidate_metrics` after it.  Returns
        ``{appointment_id: flag}``.
        """
        appointments = await appointment_repo.get_contact_appointments(
            contact_id, company_id
        )
        logger.info(
            "Recalculating inclusion flags for contact %s (%d appointments)",
            contact_id,
            len(appointments),
        )

        flags: Dict[UUID, Optional[int]] = {}
        for appointment in appointments:
            flag = compute_inclusion_flag(appointment, appointments)
            flags[appointment.appointment_id] = flag
            if appointment.inclusion_flag != flag:
                appointment.inclusion_flag = flag

        await appointment_repo.flush()
        return flags

    async def invalidate_metrics(self, company_id: UUID) -> None:
        """Drop cached metrics of a company whose flags were just committed."""
        await self._metrics.invalidate(company_id)

    async def _recalculate_one(
        self,
        appointment_id: UUID,
        session_factory: Callable[..., AsyncSession],
        semaphore: asyncio.Semaphore,
    ) -> bool:
        async with semaphore:
            try:
                async with session_factory() as session:
                    repo = AppointmentRepository(session)
                    flag = await self._calculator.calculate_inclusion_flag(
                        appointment_id, repo
                    )
                    await repo.set_inclusion_flag(appointment_id, flag)
                    await repo.commit()
                return True
            except Exception:
                logger.error(
                    "Error calculating inclusion flag for %s",
                    appointment_id,
                    exc_info=True,
                )
                return False

    async def recalculate_all_inclusion_flags(
        self,
        session_factory: Callable[..., AsyncSession],
        company_id: Optional[UUID] = None,
        batch_size: Optional[int] = None,
        concurrency: Optional[int] = None,
    ) -> Dict[str, int]:
        """Recalculate every appointment flag, optionally for one company.

        Parameters:
            session_factory: An async context-manager callable that yields
                an ``AsyncSession`` (e.g. ``AsyncSessionLocal``).  Each
                appointment gets its own session so items inside a batch
                can run concurrently.
            company_id: Restrict the run to one tenant.
            batch_size: Appointments per sequential chunk.
            concurrency: Maximum appointments in flight inside a chunk.

        A failing appointment is logged and counted in ``errors``; the run
        continues.  A failure to list the appointments propagates.
        """
        batch_size = batch_size or settings.INCLUSION_BATCH_SIZE
        semaphore = asyncio.Semaphore(
            concurrency or settings.INCLUSION_BATCH_CONCURRENCY
        )

        async with session_factory() as session:
            appointment_ids: List[UUID] = await AppointmentRepository(
                session
            ).list_ids(company_id)

        total = len(appointment_ids)
        logger.info("Recalculating inclusion flags for %d appointments", total)

        updated = 0
        errors = 0
        for start in range(0, total, batch_size):
            batch = appointment_ids[start : start + batch_size]
            results = await asyncio.gather(
                *(
                    self._recalculate_one(appointment_id, session_factory, semaphore)
                    for appointment_id in batch
                )
            )
            succeeded = sum(1 for ok in results if ok)
            updated += succeeded
            errors += len(results) - succeeded

            if start % _PROGRESS_LOG_EVERY == 0:
                logger.info(
                    "Processed %d / %d appointments", start + len(batch), total
                )

        await self._metrics.invalidate(company_id)
        logger.info(
            "Inclusion flag recalculation complete: %d updated, %d errors",
            updated,
            errors,
        )
        return {"total": total, "updated": updated, "errors": errors}
