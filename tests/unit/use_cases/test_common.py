"""Unit tests for the concurrency retry helper"""

import pytest
from unittest.mock import AsyncMock

from storefront.app.use_cases.common import to_error, with_concurrency_retry
from storefront.domain.errors import ConcurrencyConflictError, InsufficientFundsError


@pytest.mark.asyncio
class TestWithConcurrencyRetry:

    async def test_returns_first_success(self, mock_uow):
        operation = AsyncMock(return_value="done")

        assert await with_concurrency_retry(mock_uow, 3, operation) == "done"
        operation.assert_called_once()
        mock_uow.rollback.assert_not_called()

    async def test_retries_after_conflict_with_rollback(self, mock_uow):
        operation = AsyncMock(side_effect=[ConcurrencyConflictError("lost race"), "done"])

        assert await with_concurrency_retry(mock_uow, 3, operation) == "done"
        assert operation.call_count == 2
        mock_uow.rollback.assert_called_once()

    async def test_gives_up_after_last_attempt(self, mock_uow):
        operation = AsyncMock(side_effect=ConcurrencyConflictError("lost race"))

        with pytest.raises(ConcurrencyConflictError):
            await with_concurrency_retry(mock_uow, 3, operation)

        assert operation.call_count == 3
        assert mock_uow.rollback.call_count == 3

    async def test_other_errors_are_not_retried(self, mock_uow):
        operation = AsyncMock(side_effect=InsufficientFundsError(required=10, available=0))

        with pytest.raises(InsufficientFundsError):
            await with_concurrency_retry(mock_uow, 3, operation)

        operation.assert_called_once()


def test_to_error_keeps_code_message_and_reason():
    error = to_error(InsufficientFundsError(required=10, available=2))

    assert error.code == "INSUFFICIENT_FUNDS"
    assert "Required: 10" in error.message
    assert error.reason == "required=10, available=2"
