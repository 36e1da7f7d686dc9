"""AssignAccessCodes Use Case"""

from storefront.libs.result import Result
from .base import OrderUseCase
from .dtos import AssignAccessCodesCommandDTO, OrderResponseDTO


class AssignAccessCodes(OrderUseCase):
    """Operator reserves specific available codes for a processing order"""

    error_code = "ASSIGN_CODES_FAILED"
    error_message = "Failed to assign access codes"

    async def execute(self, command: AssignAccessCodesCommandDTO) -> Result[OrderResponseDTO]:
        return await self._run(
            lambda: self.fulfillment.assign_codes(
                command.order_number, command.access_code_ids, command.actor
            )
        )
