"""Bootstrap script that (re)seeds the payal price chart with the default prices.

Usage:
  python scripts/seed_price_chart.py --database-url sqlite:///ledger.db
Or provide via env: DATABASE_URL
Add --rebuild-balances to recompute inventory balances from the transaction log.
"""
import argparse

from ledger_core.app.config import Settings
from ledger_core.app.db import Store
from ledger_core.app.logging_config import configure_logging, get_logger
from ledger_core.app.services import LedgerQueryService, PriceChartService

logger = get_logger("scripts.seed")


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument('--database-url')
    parser.add_argument('--rebuild-balances', action='store_true')
    args = parser.parse_args()

    settings = Settings.from_env(database_url=args.database_url)
    configure_logging(settings.log_level)

    store = Store(settings.database_url)
    store.create_all()
    db = store.session()
    try:
        entries = PriceChartService.seed(db)
        if args.rebuild_balances:
            LedgerQueryService.rebuild_balances(db)
        db.commit()
        logger.info('Price chart now has %s entries', len(entries))
    finally:
        db.close()
        store.dispose()


if __name__ == '__main__':
    main()
