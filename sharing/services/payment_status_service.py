"""
Payment status updates for settlement records.

Invoices and walker earnings are append-only except for payment_status.
Cancelled records are never flipped to paid.
"""

import logging
from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select, update

from database.connection import get_async_session
from database.models import Invoice, PaymentStatus, WalkerEarning

logger = logging.getLogger(__name__)


async def _mark_paid(model: type[Invoice] | type[WalkerEarning], ids: Iterable[UUID]) -> int:
    id_list = list(ids)
    if not id_list:
        return 0

    async with get_async_session() as session:
        result = await session.execute(
            update(model)
            .where(
                model.id.in_(id_list),
                model.payment_status != PaymentStatus.CANCELLED,
            )
            .values(payment_status=PaymentStatus.PAID)
            .execution_options(synchronize_session=False)
        )
        await session.commit()

    updated = result.rowcount or 0
    logger.info(f"Marked {updated} of {len(id_list)} {model.__tablename__} row(s) paid")
    return updated


async def mark_invoices_paid(invoice_ids: Iterable[UUID]) -> int:
    """Mark invoices paid. Returns the number of rows updated."""
    return await _mark_paid(Invoice, invoice_ids)


async def mark_earnings_paid(earning_ids: Iterable[UUID]) -> int:
    """Mark walker earnings paid. Returns the number of rows updated."""
    return await _mark_paid(WalkerEarning, earning_ids)


async def list_unpaid_earnings(walker_id: UUID) -> list[WalkerEarning]:
    """Unpaid earnings owed to a covering walker, most recent first."""
    async with get_async_session() as session:
        result = await session.execute(
            select(WalkerEarning)
            .where(
                WalkerEarning.walker_id == walker_id,
                WalkerEarning.payment_status == PaymentStatus.UNPAID,
            )
            .order_by(WalkerEarning.date_completed.desc())
        )
        return list(result.scalars().all())
