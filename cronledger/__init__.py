"""cronledger - cron-expression job scheduler with a persisted execution ledger."""

__app_name__ = "cronledger"
__version__ = "0.1.0"
