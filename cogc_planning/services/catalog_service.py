"""Load the service code catalog from the codes_services table."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from cogc_planning.bulletin.catalog import ServiceCodeCatalog, ServiceCodeEntry
from cogc_planning.infra.database.repositories import ServiceCodeRepository

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


async def load_service_catalog(session: "AsyncSession") -> ServiceCodeCatalog:
    """Catalog from the database; the built-in default list when the table is empty or unreachable."""
    try:
        rows = await ServiceCodeRepository(session).list_all()
    except SQLAlchemyError as exc:
        logger.warning("codes_services unavailable (%s), using the default catalog", exc.__class__.__name__)
        return ServiceCodeCatalog.default()
    if not rows:
        logger.info("codes_services is empty, using the default catalog")
        return ServiceCodeCatalog.default()
    catalog = ServiceCodeCatalog(
        ServiceCodeEntry(
            code=row.code,
            service_code=row.service_code,
            poste_code=row.poste_code,
            description=row.description or "",
            horaires_type=row.horaires_type,
        )
        for row in rows
    )
    logger.info("Loaded %d service codes", len(catalog))
    return catalog
