import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./storefront.db")
    API_PREFIX = data.get("API_PREFIX", "/api")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    ENABLE_LOGGING_MIDDLEWARE = bool(data.get("ENABLE_LOGGING_MIDDLEWARE", 1))
    ENABLE_SENTRY = data.get("ENABLE_SENTRY", 0)
    DSN_SENTRY = data.get("DSN_SENTRY", "")
    SENTRY_ENVIRONMENT = data.get("SENTRY_ENVIRONMENT", "dev")

    # Ledger
    SETTLEMENT_CURRENCY = data.get("SETTLEMENT_CURRENCY", "USD")
    CONCURRENCY_RETRY_ATTEMPTS = int(data.get("CONCURRENCY_RETRY_ATTEMPTS", 3))

    # Account funding (NowPayments)
    MIN_DEPOSIT_AMOUNT = data.get("MIN_DEPOSIT_AMOUNT", 10)  # USD
    MAX_DEPOSIT_AMOUNT = data.get("MAX_DEPOSIT_AMOUNT", 10000)  # USD
    NOWPAYMENTS_API_KEY = data.get("NOWPAYMENTS_API_KEY", "")
    NOWPAYMENTS_IPN_SECRET = data.get("NOWPAYMENTS_IPN_SECRET", "")
    NOWPAYMENTS_SANDBOX = bool(data.get("NOWPAYMENTS_SANDBOX", True))
    NOWPAYMENTS_BASE_URL = data.get(
        "NOWPAYMENTS_BASE_URL",
        "https://api-sandbox.nowpayments.io/v1" if NOWPAYMENTS_SANDBOX else "https://api.nowpayments.io/v1",
    )
    NOWPAYMENTS_CALLBACK_URL = data.get("NOWPAYMENTS_CALLBACK_URL", None)
    NOWPAYMENTS_SUCCESS_URL = data.get("NOWPAYMENTS_SUCCESS_URL", None)
    NOWPAYMENTS_CANCEL_URL = data.get("NOWPAYMENTS_CANCEL_URL", None)
    GATEWAY_TIMEOUT_SECONDS = float(data.get("GATEWAY_TIMEOUT_SECONDS", 10))

    # Referral program
    REFERRAL_COMMISSION_RATE = data.get("REFERRAL_COMMISSION_RATE", "0.10")
    REFERRAL_MINIMUM_PAYOUT = data.get("REFERRAL_MINIMUM_PAYOUT", 50)  # USD
    COMMISSION_RETRY_ENABLED = bool(data.get("COMMISSION_RETRY_ENABLED", True))
    COMMISSION_RETRY_INTERVAL_SECONDS = data.get("COMMISSION_RETRY_INTERVAL_SECONDS", 900)

    # Ledger Reconciliation
    RECONCILIATION_ENABLED = bool(data.get("RECONCILIATION_ENABLED", True))
    RECONCILIATION_INTERVAL_SECONDS = data.get("RECONCILIATION_INTERVAL_SECONDS", 86400)  # Daily
    STALE_DEPOSIT_HOURS = data.get("STALE_DEPOSIT_HOURS", 24)

    # Operator alerts (inventory shortage, reconciliation discrepancies)
    OPERATOR_NOTIFICATION_WEBHOOK = data.get("OPERATOR_NOTIFICATION_WEBHOOK", None)
