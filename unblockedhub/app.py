"""Application wiring: settings -> logging -> backend selection -> catalog service."""

from unblockedhub.core.app_logger import setup_logging
from unblockedhub.core.config import HubSettings
from unblockedhub.services.backend import select_backend
from unblockedhub.services.catalog_service import CatalogService
from unblockedhub.sync.broadcast import BroadcastHub


def create_catalog(
    settings: HubSettings | None = None, hub: BroadcastHub | None = None
) -> CatalogService:
    """
    Build and start the catalog. Call `stop()` and `backend.close()` on teardown (or use `shutdown_catalog`).
    ---
    Without a `hub`, local clients signal each other through the process-wide default one.
    """
    settings = settings or HubSettings()
    setup_logging(settings.log_level)

    backend = select_backend(settings, hub)
    catalog = CatalogService(backend)
    catalog.start()
    return catalog


def shutdown_catalog(catalog: CatalogService) -> None:
    catalog.stop()
    catalog.backend.close()
