"""
Composition root for storage backends.

The content layer asks for a BitStoreService and never learns which
implementation it got. The choice is made here, once, from settings.
"""

import logging
from typing import Optional

from .config.settings import Settings, get_settings
from .core.service import BitStoreService
from .infrastructure.filesystem.backend import FileSystemBitStoreService
from .infrastructure.storage.backend import ObjectStoreBitStoreService
from .infrastructure.storage.client import ObjectStoreConfig, create_object_store_client

logger = logging.getLogger(__name__)

FILESYSTEM_BACKEND = "filesystem"


def create_bitstore_service(
    settings: Optional[Settings] = None,
    log: Optional[logging.Logger] = None,
) -> BitStoreService:
    """
    Build the configured BitStoreService.
    
    The service is returned uninitialised; call init() once at startup
    before the first get/put/about/remove.
    
    Args:
        settings: Configuration to use (defaults to the cached process settings)
        log: Logger handed to the backend (defaults to the backend's module logger)
    
    Returns:
        BitStoreService implementation (object store or filesystem)
    """
    settings = settings or get_settings()
    
    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.warning(
            "Missing storage configuration",
            extra={"missing_fields": missing_fields}
        )
    
    subfolder = settings.bitstore_subfolder or None
    
    if settings.backend_name == FILESYSTEM_BACKEND:
        service = FileSystemBitStoreService(
            asset_dir=settings.bitstore_asset_dir,
            subfolder=subfolder,
            log=log,
        )
    else:
        client = create_object_store_client(
            settings.backend_name,
            ObjectStoreConfig(
                access_key=settings.bitstore_access_key,
                secret_key=settings.bitstore_secret_key,
                endpoint_url=settings.bitstore_endpoint_url,
                region=settings.bitstore_region,
            ),
        )
        service = ObjectStoreBitStoreService(
            client=client,
            container=settings.bitstore_bucket_name or None,
            subfolder=subfolder,
            hostname=settings.dspace_hostname,
            access_key=settings.bitstore_access_key,
            secret_key=settings.bitstore_secret_key,
            staging_dir=settings.bitstore_staging_dir,
            log=log,
        )
    
    logger.debug(
        "Created bitstore service",
        extra={"backend": settings.backend_name, "service": type(service).__name__}
    )
    
    return service
