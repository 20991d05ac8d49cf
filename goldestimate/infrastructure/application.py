"""Application bootstrap utilities for GoldEstimate."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Union

from goldestimate.domain.estimation_models import LineItem, Product
from goldestimate.infrastructure.app_constants import APP_TITLE
from goldestimate.infrastructure.logger import DatabaseOperation, configure_logging
from goldestimate.persistence.database_manager import DatabaseManager
from goldestimate.services.backup_service import BackupService
from goldestimate.services.estimate_repository import DatabaseEstimationGateway
from goldestimate.services.pricing_calculator import build_line_item
from goldestimate.services.settings_service import SettingsService
from goldestimate.store import EstimationStore


@dataclass
class ApplicationContext:
    """Aggregate of resources created during application bootstrap."""

    settings: SettingsService
    db_manager: DatabaseManager
    gateway: DatabaseEstimationGateway
    store: EstimationStore
    backups: BackupService
    tax_percent: float
    logger: Optional[logging.Logger] = None

    def price_product(
        self,
        product: Product,
        *,
        item_id: str,
        rate: Optional[float] = None,
        is_manual_entry: bool = False,
    ) -> LineItem:
        """Price ``product`` with the configured tax and the store's active rate sheet."""
        return build_line_item(
            product,
            item_id=item_id,
            rate=rate,
            rate_sheet=self.store.rate_sheet,
            tax_percent=self.tax_percent,
            is_manual_entry=is_manual_entry,
        )

    def backup_now(self, destination_dir: Union[str, Path], password: str) -> Path:
        """Write an encrypted backup named after the configured device."""
        return self.backups.create_backup(
            destination_dir, password, device_name=self.settings.load_device_name()
        )

    def shutdown(self) -> None:
        """Release resources created during startup."""
        self.db_manager.close()
        if self.logger:
            self.logger.info("Application shut down")


class ApplicationBuilder:
    """Coordinate logging, settings, storage and the estimation store."""

    def __init__(
        self,
        *,
        settings_factory: Callable[[], SettingsService] = SettingsService,
        logging_setup: Callable[..., logging.Logger] = configure_logging,
        db_factory: Callable[[str], Any] = DatabaseManager,
        store_factory: Callable[..., EstimationStore] = EstimationStore,
    ) -> None:
        self._settings_factory = settings_factory
        self._logging_setup = logging_setup
        self._db_factory = db_factory
        self._store_factory = store_factory

    def build(self, db_path: Optional[str] = None) -> ApplicationContext:
        """Configure logging, open storage and return a ready estimation store."""
        logger = self._logging_setup()
        settings = self._settings_factory()
        path = db_path or settings.load_database_path()

        db_manager = self._open_database(path, logger)
        try:
            gateway = DatabaseEstimationGateway(db_manager)
            store = self._store_factory(gateway, history_limit=settings.load_history_limit())
            store.initialize()
        except Exception:
            db_manager.close()
            raise

        tax_percent = settings.load_tax_percent()
        logger.info("%s started with database %s (tax %.2f%%)", APP_TITLE, path, tax_percent)
        return ApplicationContext(
            settings=settings,
            db_manager=db_manager,
            gateway=gateway,
            store=store,
            backups=BackupService(db_manager),
            tax_percent=tax_percent,
            logger=logger,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _open_database(self, path: str, logger: logging.Logger) -> Any:
        with DatabaseOperation("open database", logger):
            return self._db_factory(path)


def build_application(db_path: Optional[str] = None, **factories: Any) -> ApplicationContext:
    """Shortcut for ``ApplicationBuilder(**factories).build(db_path)``."""
    return ApplicationBuilder(**factories).build(db_path)
