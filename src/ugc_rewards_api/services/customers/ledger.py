"""Customer records and paid-order counters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping
from uuid import UUID

from loguru import logger
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ugc_rewards_api.models.customer import Customer
from ugc_rewards_api.models.merchant import Merchant


class CustomerLedgerError(RuntimeError):
    """Base exception for customer ledger failures."""


class CustomerNotFoundError(CustomerLedgerError):
    """Raised when a customer row cannot be located."""


@dataclass(slots=True, frozen=True)
class ExternalCustomer:
    """Customer identity as reported by the e-commerce platform."""

    external_id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ExternalCustomer":
        raw_id = payload.get("id")
        if raw_id is None or str(raw_id).strip() == "":
            raise ValueError("Customer payload is missing an id")
        return cls(
            external_id=str(raw_id),
            email=str(payload.get("email") or ""),
            first_name=payload.get("first_name"),
            last_name=payload.get("last_name"),
        )


class CustomerLedger:
    """Upserts customers per merchant and maintains their paid-order count."""

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    async def find_or_create(self, external: ExternalCustomer, merchant: Merchant) -> Customer:
        """Fetch the customer for ``(merchant, external id)``, creating it with zero orders."""

        merchant_id = merchant.id
        shop_domain = merchant.shop_domain
        existing = await self._find(merchant_id, external.external_id)
        if existing is not None:
            return existing

        customer = Customer(
            merchant_id=merchant_id,
            external_id=external.external_id,
            email=external.email,
            first_name=external.first_name,
            last_name=external.last_name,
            orders_count=0,
        )
        self._db.add(customer)
        try:
            await self._db.flush()
        except IntegrityError:
            await self._db.rollback()
            logger.warning(
                "Detected race when creating customer",
                merchant=shop_domain,
                external_id=external.external_id,
            )
            existing = await self._find(merchant_id, external.external_id)
            if existing is None:
                raise
            return existing

        await self._db.commit()
        logger.info(
            "Created customer",
            customer_id=str(customer.id),
            merchant=shop_domain,
            external_id=external.external_id,
        )
        return customer

    async def increment_order_count(self, customer_id: UUID) -> Customer:
        """Atomically add one paid order and return the refreshed customer."""

        stmt = (
            update(Customer)
            .where(Customer.id == customer_id)
            .values(orders_count=Customer.orders_count + 1, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        result = await self._db.execute(stmt)
        if result.rowcount == 0:
            await self._db.rollback()
            raise CustomerNotFoundError(f"Customer {customer_id} not found")
        await self._db.commit()

        refreshed = await self.get(customer_id)
        if refreshed is None:
            raise CustomerNotFoundError(f"Customer {customer_id} not found")
        logger.info("Counted paid order", customer_id=str(customer_id), orders_count=refreshed.orders_count)
        return refreshed

    async def get(self, customer_id: UUID) -> Customer | None:
        stmt = (
            select(Customer)
            .where(Customer.id == customer_id)
            .execution_options(populate_existing=True)
        )
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_email(self, merchant: Merchant, email: str) -> Customer | None:
        stmt = (
            select(Customer)
            .where(Customer.merchant_id == merchant.id, func.lower(Customer.email) == email.strip().lower())
            .order_by(Customer.created_at.asc())
            .limit(1)
        )
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def _find(self, merchant_id: UUID, external_id: str) -> Customer | None:
        stmt = select(Customer).where(
            Customer.merchant_id == merchant_id,
            Customer.external_id == external_id,
        )
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()


__all__ = [
    "CustomerLedger",
    "CustomerLedgerError",
    "CustomerNotFoundError",
    "ExternalCustomer",
]
