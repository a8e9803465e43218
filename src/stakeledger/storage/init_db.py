import os

import django
import structlog
from django.core.management import call_command

from stakeledger import settings

logger = structlog.get_logger("init_db")


def init_store():
    """
    Sets up Django and creates the record table in the ledger database (Idempotent).
    """
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "stakeledger.settings")
    django.setup()

    try:
        call_command("migrate", run_syncdb=True, interactive=False, verbosity=0)
        logger.info("ledger_store_ensured", path=settings.LEDGER_DB_PATH)
    except Exception as e:
        logger.critical("init_failed", error=str(e))
        raise

if __name__ == "__main__":
    init_store()
