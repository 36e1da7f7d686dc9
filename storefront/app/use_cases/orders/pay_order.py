"""PayOrder Use Case"""

from storefront.libs.result import Result
from storefront.domain.errors import InsufficientFundsError
from .base import OrderUseCase
from .dtos import OrderResponseDTO, PayOrderCommandDTO


class PayOrder(OrderUseCase):
    """
    Use Case: Pay an order from the account balance

    Business Rules:
    1. Synchronous debit of net_amount
    2. Insufficient funds: the failed purchase transaction and the order's
       failed payment_status are committed; INSUFFICIENT_FUNDS is returned
    3. Manual orders wait for delivery; automatic orders are fulfilled at
       once (a shortage leaves them processing)
    """

    error_code = "PAY_ORDER_FAILED"
    error_message = "Failed to pay order"
    commit_on = (InsufficientFundsError,)

    async def execute(self, command: PayOrderCommandDTO) -> Result[OrderResponseDTO]:
        return await self._run(lambda: self.fulfillment.pay(command.order_number, command.actor))
