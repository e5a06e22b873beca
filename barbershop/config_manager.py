# barbershop/config_manager.py
"""
Configuration manager for the shop catalog.

Handles:
- Saving the catalog (services, blocks, professionals, business) to JSON
- Loading it back, falling back to the seed catalog on first run
- Deleting the persisted copy (reset to defaults)
"""
import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from barbershop.catalog_config import CatalogConfig, default_catalog_config
from barbershop.logging_config import get_logger

logger = get_logger(__name__)

CATALOG_FILENAME = "catalog.json"


class ConfigManager:
    """Manages the persisted catalog file."""

    def __init__(self, config_dir: Optional[str] = None):
        """
        Initialize config manager.

        Args:
            config_dir: Directory for the catalog file.
                       Defaults to CATALOG_PATH from barbershop.config.
        """
        if config_dir is None:
            from barbershop import config
            config_dir = config.CATALOG_PATH

        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

    @property
    def catalog_path(self) -> Path:
        return self.config_dir / CATALOG_FILENAME

    def save_catalog(self, catalog: CatalogConfig) -> None:
        """
        Save catalog to file.

        Writes to a temporary file first and swaps it in, so readers never
        see a half-written catalog.
        """
        payload = catalog.model_dump(mode="json", by_alias=True)

        fd, tmp_path = tempfile.mkstemp(dir=self.config_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.catalog_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.info("catalog_saved", path=str(self.catalog_path))

    def load_catalog(self) -> CatalogConfig:
        """
        Load catalog from file.

        Raises:
            FileNotFoundError: If no catalog has been saved yet
        """
        if not self.catalog_path.exists():
            raise FileNotFoundError(f"Catalog not found: {self.catalog_path}")

        with open(self.catalog_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        return CatalogConfig.model_validate(data)

    def load_or_default(self) -> CatalogConfig:
        """Load the saved catalog, or the seed catalog if none exists."""
        try:
            return self.load_catalog()
        except FileNotFoundError:
            logger.info("catalog_seeded_from_defaults")
            return default_catalog_config()

    def catalog_exists(self) -> bool:
        return self.catalog_path.exists()

    def delete_catalog(self) -> None:
        """
        Delete the saved catalog.

        Raises:
            FileNotFoundError: If no catalog exists
        """
        if not self.catalog_path.exists():
            raise FileNotFoundError(f"Catalog not found: {self.catalog_path}")

        self.catalog_path.unlink()
