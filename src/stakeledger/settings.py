from decimal import Decimal
from pathlib import Path

from decouple import config

BASE_DIR = Path(__file__).resolve().parent.parent.parent

DEBUG = config("DEBUG", default=False, cast=bool)
SECRET_KEY = config("SECRET_KEY", default="stakeledger-dev-only-secret")

# Ledger storage backend: "memory" or "django"
LEDGER_STORAGE = config("LEDGER_STORAGE", default="memory")
LEDGER_DB_PATH = config("LEDGER_DB_PATH", default=str(BASE_DIR / "ledger.sqlite3"))

# Rates
INTEREST_RATE = config("LEDGER_INTEREST_RATE", default="0.01", cast=Decimal)
REWARD_ANNUAL_RATE = config("LEDGER_REWARD_ANNUAL_RATE", default="0.05", cast=Decimal)

# Suspicious activity heuristics
SUSPICIOUS_WINDOW_SECONDS = config("LEDGER_SUSPICIOUS_WINDOW_SECONDS", default=86400, cast=int)
SUSPICIOUS_MAX_TRANSACTIONS = config("LEDGER_SUSPICIOUS_MAX_TRANSACTIONS", default=10, cast=int)
SUSPICIOUS_AMOUNT = config("LEDGER_SUSPICIOUS_AMOUNT", default="10000", cast=Decimal)

# Django (ORM only, used by the django storage medium)
INSTALLED_APPS = [
    "stakeledger.django_apps.ledger.apps.LedgerConfig",
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": LEDGER_DB_PATH,
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
USE_TZ = True
TIME_ZONE = "UTC"
