"""Get Balance Use Case

Retrieves an owner's derived balance.
"""

from datetime import datetime
from storefront.libs.result import Result, Return, Error
from storefront.app.repositories.account_repository import AccountRepository
from storefront.app.services.ledger import Ledger
from storefront.app.use_cases.ledger.dtos import BalanceResponseDTO


class GetBalance:
    """
    Get Balance Use Case

    Read-only: the balance is the sum of the owner's completed transactions,
    computed in a single statement.
    """

    def __init__(self, ledger: Ledger, account_repo: AccountRepository):
        self.ledger = ledger
        self.account_repo = account_repo

    async def execute(self, owner_id: str) -> Result[BalanceResponseDTO]:
        """
        Errors:
            NOT_FOUND: Owner has no account
        """
        account = await self.account_repo.get_by_owner_id(owner_id)
        if not account:
            return Return.err(
                Error(
                    code="NOT_FOUND",
                    message=f"No account found for owner {owner_id}",
                )
            )

        return Return.ok(
            BalanceResponseDTO(
                owner_id=owner_id,
                balance=await self.ledger.balance_of(owner_id),
                available_commission=await self.ledger.available_commission(owner_id),
                currency=self.ledger.settlement_currency,
                as_of=datetime.utcnow(),
            )
        )
