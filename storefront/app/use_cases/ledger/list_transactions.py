"""List Transactions Use Case"""

from storefront.libs.result import Result, Return, Error
from storefront.app.repositories.transaction_repository import TransactionRepository
from storefront.app.use_cases.ledger.dtos import ListTransactionsResponseDTO, TransactionDTO


class ListTransactions:
    """
    List an owner's transactions, newest first, with pagination
    """

    MAX_LIMIT = 100

    def __init__(self, transaction_repo: TransactionRepository):
        self.transaction_repo = transaction_repo

    async def execute(
        self, owner_id: str, limit: int = 20, offset: int = 0
    ) -> Result[ListTransactionsResponseDTO]:
        if limit < 1 or limit > self.MAX_LIMIT or offset < 0:
            return Return.err(
                Error(
                    code="VALIDATION_ERROR",
                    message=f"limit must be between 1 and {self.MAX_LIMIT}, offset must be >= 0",
                )
            )

        transactions, total = await self.transaction_repo.get_by_owner_id(owner_id, limit, offset)

        return Return.ok(
            ListTransactionsResponseDTO(
                transactions=[TransactionDTO.from_entity(t) for t in transactions],
                total=total,
                limit=limit,
                offset=offset,
            )
        )
