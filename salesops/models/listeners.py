from datetime import datetime, timezone
from sqlalchemy import event

from salesops.models.appointment import Appointment
from salesops.models.closer import Closer
from salesops.models.commission import Commission
from salesops.models.contact import Contact


# Auto updated_at
@event.listens_for(Appointment, "before_update")
@event.listens_for(Contact, "before_update")
@event.listens_for(Closer, "before_update")
@event.listens_for(Commission, "before_update")
def update_timestamp(mapper, connection, target):
    target.updated_at = datetime.now(timezone.utc)


# Released commission may never exceed the entitlement
@event.listens_for(Commission, "before_insert")
@event.listens_for(Commission, "before_update")
def block_over_release(mapper, connection, target):
    if (
        target.released_amount is not None
        and target.total_amount is not None
        and target.released_amount > target.total_amount
    ):
        raise ValueError(
            f"Released commission {target.released_amount} exceeds "
            f"total {target.total_amount}"
        )
