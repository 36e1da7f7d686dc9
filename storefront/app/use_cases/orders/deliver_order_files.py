"""DeliverOrderFiles Use Case"""

from storefront.libs.result import Result
from .base import OrderUseCase
from .dtos import DeliverOrderFilesCommandDTO, OrderResponseDTO


class DeliverOrderFiles(OrderUseCase):
    """Operator delivers files for a manual order, which completes it"""

    error_code = "DELIVER_FILES_FAILED"
    error_message = "Failed to deliver order files"

    async def execute(self, command: DeliverOrderFilesCommandDTO) -> Result[OrderResponseDTO]:
        return await self._run(
            lambda: self.fulfillment.deliver_files(
                command.order_number, command.file_references, command.notes, command.actor
            )
        )
