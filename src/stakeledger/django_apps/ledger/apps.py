import os

from django.apps import AppConfig


class LedgerConfig(AppConfig):
    name = "stakeledger.django_apps.ledger"
    label = "ledger"
    path = os.path.dirname(os.path.abspath(__file__))
    default_auto_field = "django.db.models.BigAutoField"
