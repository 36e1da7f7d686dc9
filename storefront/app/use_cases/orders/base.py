"""Shared plumbing for order use cases"""

import logging
from typing import Awaitable, Callable, Optional
from storefront.libs.result import Result, Return, Error
from storefront.app.services.inventory_allocator import InventoryAllocator
from storefront.app.services.order_fulfillment import OrderFulfillmentEngine
from storefront.app.services.unit_of_work import UnitOfWork
from storefront.app.use_cases.common import to_error, with_concurrency_retry
from storefront.app.use_cases.referrals.accrue_referral_commission import AccrueReferralCommission
from storefront.domain.errors import StorefrontError
from storefront.domain.order import Order, OrderStatus
from .dtos import OrderResponseDTO

logger = logging.getLogger(__name__)


class OrderUseCase:
    """
    Base for order transitions

    Subclasses hand the engine call to `_run`, which retries it on lost races,
    commits, maps errors and accrues the referral commission once the order
    has completed. Errors listed in `commit_on` keep the state written before
    they were raised (e.g. a failed debit).
    """

    error_code = "ORDER_OPERATION_FAILED"
    error_message = "Failed to process order"
    commit_on: tuple = ()

    def __init__(
        self,
        uow: UnitOfWork,
        fulfillment: OrderFulfillmentEngine,
        allocator: InventoryAllocator,
        commission: Optional[AccrueReferralCommission] = None,
        retry_attempts: int = 3,
    ):
        self.uow = uow
        self.fulfillment = fulfillment
        self.allocator = allocator
        self.commission = commission
        self.retry_attempts = retry_attempts

    async def _run(self, apply: Callable[[], Awaitable[Order]]) -> Result[OrderResponseDTO]:
        async def operation() -> OrderResponseDTO:
            order = await apply()
            response = await self._to_response_dto(order)
            await self.uow.commit()
            return response

        try:
            response = await with_concurrency_retry(self.uow, self.retry_attempts, operation)
        except StorefrontError as e:
            if isinstance(e, self.commit_on):
                await self.uow.commit()
            else:
                await self.uow.rollback()
            return Return.err(to_error(e))
        except Exception as e:
            await self.uow.rollback()
            return Return.err(Error(code=self.error_code, message=self.error_message, reason=str(e)))

        if response.status == OrderStatus.COMPLETED.value and self.commission:
            result = await self.commission.execute(response.order_number)
            if result.is_err():
                logger.error(
                    f"Order {response.order_number} completed but commission was not accrued: "
                    f"{result.error.code}"
                )

        return Return.ok(response)

    async def _to_response_dto(self, order: Order) -> OrderResponseDTO:
        codes = await self.allocator.codes_for_order(order.id)
        return OrderResponseDTO.from_entity(order, codes)
