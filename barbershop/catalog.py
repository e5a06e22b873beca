"""Read-mostly catalog shared by the scheduling engine.

The engine only reads (services, hidden blocks, professionals, business
calendar). Admin edits replace the whole snapshot under a lock, so readers
always see a consistent catalog, and are persisted through ConfigManager
when one is attached.
"""
import threading
from typing import Dict, List, Optional

import pydantic

from barbershop.catalog_config import (
    BusinessConfig,
    CatalogConfig,
    ProfessionalConfig,
    ServiceConfig,
    default_catalog_config,
)
from barbershop.config_manager import ConfigManager
from barbershop.logging_config import get_logger

logger = get_logger(__name__)

# Marks an edit argument that should keep its current value
UNCHANGED = object()


class CatalogError(ValueError):
    """Invalid catalog edit (unknown id, duplicate id, ...)."""
    pass


class Catalog:
    """Services, hidden services, professionals and business calendar."""

    def __init__(
        self,
        catalog: Optional[CatalogConfig] = None,
        manager: Optional[ConfigManager] = None
    ):
        """
        Args:
            catalog: Initial snapshot. Loaded from manager (or the seed
                     data) when omitted.
            manager: Optional persistence for admin edits.
        """
        self._manager = manager
        if catalog is None:
            catalog = manager.load_or_default() if manager else default_catalog_config()
        self._catalog = catalog
        self._lock = threading.Lock()

    @classmethod
    def from_directory(cls, config_dir: Optional[str] = None) -> "Catalog":
        return cls(manager=ConfigManager(config_dir))

    @property
    def snapshot(self) -> CatalogConfig:
        return self._catalog

    # --- Reads (consumed by the engine) ---

    def get_services(self) -> List[ServiceConfig]:
        """Customer-facing services."""
        return list(self._catalog.services)

    def get_hidden_services(self) -> List[ServiceConfig]:
        """Administrative blocks."""
        return list(self._catalog.hidden_services)

    def get_professionals(self) -> List[ProfessionalConfig]:
        return list(self._catalog.professionals)

    def get_business_config(self) -> BusinessConfig:
        return self._catalog.business

    def find_service(self, service_id: str) -> Optional[ServiceConfig]:
        """Look up a service in the visible and hidden catalogs."""
        catalog = self._catalog
        for service in catalog.services:
            if service.id == service_id:
                return service
        for service in catalog.hidden_services:
            if service.id == service_id:
                return service
        return None

    def find_visible_service(self, service_id: str) -> Optional[ServiceConfig]:
        return next((s for s in self._catalog.services if s.id == service_id), None)

    def find_professional(self, professional_id: str) -> Optional[ProfessionalConfig]:
        return next(
            (p for p in self._catalog.professionals if p.id == professional_id),
            None
        )

    def is_hidden(self, service_id: str) -> bool:
        return any(s.id == service_id for s in self._catalog.hidden_services)

    def durations(self) -> Dict[str, int]:
        """Service id -> duration for the combined visible+hidden catalog."""
        catalog = self._catalog
        return {
            s.id: s.duration_minutes
            for s in list(catalog.services) + list(catalog.hidden_services)
        }

    def professionals_for_service(self, service_id: str) -> List[ProfessionalConfig]:
        return [p for p in self._catalog.professionals if p.performs(service_id)]

    # --- Admin edits ---

    def update_service_price(self, service_id: str, price: float) -> ServiceConfig:
        if price < 0:
            raise CatalogError("Price must be 0 or positive")

        def edit(catalog: CatalogConfig) -> CatalogConfig:
            if not any(s.id == service_id for s in catalog.services):
                raise CatalogError(f"Service '{service_id}' not found")
            services = [
                s.model_copy(update={"price": price}) if s.id == service_id else s
                for s in catalog.services
            ]
            return catalog.model_copy(update={"services": services})

        self._apply(edit, action="update_service_price", service_id=service_id)
        return self.find_visible_service(service_id)

    def add_service(self, service: ServiceConfig) -> None:
        def edit(catalog: CatalogConfig) -> CatalogConfig:
            if self.find_service(service.id):
                raise CatalogError(f"Service '{service.id}' already exists")
            return catalog.model_copy(update={"services": list(catalog.services) + [service]})

        self._apply(edit, action="add_service", service_id=service.id)

    def delete_service(self, service_id: str) -> None:
        """Remove a visible service. Existing appointments keep their snapshot."""
        def edit(catalog: CatalogConfig) -> CatalogConfig:
            services = [s for s in catalog.services if s.id != service_id]
            if len(services) == len(catalog.services):
                raise CatalogError(f"Service '{service_id}' not found")
            return catalog.model_copy(update={"services": services})

        self._apply(edit, action="delete_service", service_id=service_id)

    def update_professional_hours(
        self,
        professional_id: str,
        open_time=UNCHANGED,
        close_time=UNCHANGED
    ) -> ProfessionalConfig:
        """
        Set or clear (None) a professional's own hours.

        Arguments left as UNCHANGED keep their current value.
        """
        changes = {
            field: value
            for field, value in (("open_time", open_time), ("close_time", close_time))
            if value is not UNCHANGED
        }
        return self._update_professional(
            professional_id,
            changes,
            action="update_professional_hours"
        )

    def update_professional_services(
        self,
        professional_id: str,
        service_ids: List[str]
    ) -> ProfessionalConfig:
        unknown = [i for i in service_ids if not self.find_visible_service(i)]
        if unknown:
            raise CatalogError(f"Unknown services: {unknown}")
        return self._update_professional(
            professional_id,
            {"service_ids": list(service_ids)},
            action="update_professional_services"
        )

    def update_business_config(self, **changes) -> BusinessConfig:
        def edit(catalog: CatalogConfig) -> CatalogConfig:
            data = catalog.business.model_dump()
            data.update(changes)
            return catalog.model_copy(update={"business": BusinessConfig(**data)})

        self._apply(edit, action="update_business_config", fields=sorted(changes))
        return self._catalog.business

    def reset_to_defaults(self) -> CatalogConfig:
        """Drop every admin edit and go back to the seed catalog."""
        with self._lock:
            if self._manager is not None and self._manager.catalog_exists():
                self._manager.delete_catalog()
            self._catalog = default_catalog_config()
        logger.warning("catalog_reset_to_defaults")
        return self._catalog

    def _update_professional(self, professional_id: str, changes: dict, action: str):
        def edit(catalog: CatalogConfig) -> CatalogConfig:
            found = False
            professionals = []
            for p in catalog.professionals:
                if p.id == professional_id:
                    found = True
                    # Re-validate so bad HH:MM values are rejected
                    p = ProfessionalConfig(**{**p.model_dump(), **changes})
                professionals.append(p)
            if not found:
                raise CatalogError(f"Professional '{professional_id}' not found")
            return catalog.model_copy(update={"professionals": professionals})

        self._apply(edit, action=action, professional_id=professional_id)
        return self.find_professional(professional_id)

    def _apply(self, edit, action: str, **log_fields) -> None:
        with self._lock:
            try:
                updated = edit(self._catalog)
            except pydantic.ValidationError as e:
                raise CatalogError("; ".join(err["msg"] for err in e.errors())) from e
            if self._manager is not None:
                self._manager.save_catalog(updated)
            self._catalog = updated
        logger.info("catalog_updated", action=action, **log_fields)
