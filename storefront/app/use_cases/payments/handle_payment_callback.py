"""HandlePaymentCallback Use Case

Authenticates and applies a gateway payment notification (IPN).
"""

import logging
from pydantic import ValidationError as PydanticValidationError
from storefront.libs.result import Result, Return, Error
from storefront.app.services.payment_gateway import GatewayCallback
from storefront.app.services.payment_reconciler import CallbackResult, PaymentReconciler
from storefront.app.services.unit_of_work import UnitOfWork
from storefront.app.use_cases.common import to_error, with_concurrency_retry
from storefront.domain.errors import StorefrontError
from .dtos import CallbackResponseDTO, PaymentCallbackCommandDTO

logger = logging.getLogger(__name__)


class HandlePaymentCallback:
    """
    Use Case: Apply payment notification

    Business Rules:
    1. Signature is verified over the raw body before anything is parsed
    2. Replays and out-of-order notifications are acknowledged as noop
    3. Unknown orders are rejected with UNKNOWN_ORDER so the gateway retries

    Errors:
        SIGNATURE_INVALID: Missing or wrong signature
        VALIDATION_ERROR: Body is not a valid notification
        UNKNOWN_ORDER: No deposit matches the notification
    """

    def __init__(self, uow: UnitOfWork, reconciler: PaymentReconciler, retry_attempts: int = 3):
        self.uow = uow
        self.reconciler = reconciler
        self.retry_attempts = retry_attempts

    async def execute(self, command: PaymentCallbackCommandDTO) -> Result[CallbackResponseDTO]:
        try:
            # Step 1: Authenticate
            self.reconciler.ensure_signature(command.raw_body, command.signature)

            # Step 2: Parse
            try:
                callback = GatewayCallback.model_validate_json(command.raw_body)
            except PydanticValidationError as e:
                logger.warning(f"Malformed payment callback: {e.error_count()} errors")
                return Return.err(
                    Error(
                        code="VALIDATION_ERROR",
                        message="Malformed payment callback",
                        reason=str(e)[:500],
                    )
                )

            # Step 3: Apply and commit
            async def operation():
                outcome = await self.reconciler.apply_callback(callback)
                await self.uow.commit()
                return outcome

            outcome = await with_concurrency_retry(self.uow, self.retry_attempts, operation)

            if outcome.result == CallbackResult.REJECTED:
                return Return.err(
                    Error(
                        code=outcome.reason or "UNKNOWN_ORDER",
                        message="No deposit matches this payment",
                        reason=f"payment_id={callback.payment_id}, order_id={callback.order_id}",
                    )
                )

            return Return.ok(
                CallbackResponseDTO(
                    result=outcome.result.value,
                    transaction_id=outcome.transaction_id,
                    status=outcome.status,
                )
            )

        except StorefrontError as e:
            await self.uow.rollback()
            return Return.err(to_error(e))
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Payment callback processing failed: {e}")
            return Return.err(
                Error(
                    code="CALLBACK_PROCESSING_FAILED",
                    message="Failed to process payment callback",
                    reason=str(e),
                )
            )
