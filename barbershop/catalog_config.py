# barbershop/catalog_config.py
"""
Catalog configuration schema for the barbershop.

Supports:
- Customer-facing services and hidden administrative blocks
- Professionals with per-person working hours
- Business calendar (open days, default hours, slot granularity)

JSON uses camelCase keys (durationMinutes, serviceIds, openTime, ...).
Python code uses the snake_case field names.
"""
from typing import Optional, List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from barbershop.timeutils import is_valid_time, parse_minutes


def _check_time(value: Optional[str]) -> Optional[str]:
    if value is not None and not is_valid_time(value):
        raise ValueError(f"Invalid time '{value}'. Use HH:MM (e.g., 09:00)")
    return value


class ServiceConfig(BaseModel):
    """Service offered by the shop (or a hidden block)."""
    id: str = Field(..., min_length=1, description="Unique service ID (e.g., c1)")
    name: str = Field(..., min_length=1, max_length=100, description="Service name")
    duration_minutes: int = Field(..., gt=0, le=720, description="Duration in minutes")
    price: float = Field(..., ge=0, description="Price as a decimal amount (0 or positive)")

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "c1",
                "name": "Fade Cut",
                "durationMinutes": 30,
                "price": 35.0
            }
        }
    )


class ProfessionalConfig(BaseModel):
    """A professional and the services they perform."""
    id: str = Field(..., min_length=1, description="Unique professional ID")
    name: str = Field(..., min_length=1, max_length=100)
    service_ids: List[str] = Field(default_factory=list, description="Eligible service IDs")
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    open_time: Optional[str] = Field(None, description="Overrides business open time")
    close_time: Optional[str] = Field(None, description="Overrides business close time")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("open_time", "close_time")
    @classmethod
    def validate_time(cls, v):
        return _check_time(v)

    def performs(self, service_id: str) -> bool:
        return service_id in self.service_ids


class BusinessConfig(BaseModel):
    """Business calendar. Hot-editable; edits apply to later computations."""
    name: str = Field(..., min_length=1, max_length=200)
    city: str = ""
    phone: str = ""
    open_time: str = Field("08:00", description="Default open time (HH:MM)")
    close_time: str = Field("18:00", description="Default close time (HH:MM)")
    days_open: List[int] = Field(
        default_factory=lambda: [1, 2, 3, 4, 5, 6],
        description="Open weekdays, 0=Sunday .. 6=Saturday"
    )
    slot_interval: int = Field(30, gt=0, le=240, description="Slot granularity in minutes")
    currency: str = "BRL"
    timezone: str = Field("America/Sao_Paulo", description="Reference timezone for 'today'")
    saturday_close_time: str = Field("17:00", description="Saturday early close")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("open_time", "close_time", "saturday_close_time")
    @classmethod
    def validate_time(cls, v):
        return _check_time(v)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v):
        """Must be an IANA zone name known to zoneinfo."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone '{v}' (e.g., America/Sao_Paulo)")
        return v

    @field_validator("days_open")
    @classmethod
    def validate_days_open(cls, v):
        """Weekdays must be in 0..6."""
        if any(day < 0 or day > 6 for day in v):
            raise ValueError("days_open entries must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(v))

    @model_validator(mode="after")
    def check_hours_order(self):
        if parse_minutes(self.open_time) >= parse_minutes(self.close_time):
            raise ValueError("open_time must be earlier than close_time")
        return self


class CatalogConfig(BaseModel):
    """Complete catalog: business calendar, services, blocks and staff."""
    business: BusinessConfig
    services: List[ServiceConfig] = Field(default_factory=list)
    hidden_services: List[ServiceConfig] = Field(default_factory=list)
    professionals: List[ProfessionalConfig] = Field(default_factory=list)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("hidden_services")
    @classmethod
    def validate_hidden_price(cls, v):
        """Hidden services are administrative blocks and never cost anything."""
        for service in v:
            if service.price != 0:
                raise ValueError(f"Hidden service '{service.id}' must have price 0")
        return v

    @model_validator(mode="after")
    def check_unique_service_ids(self):
        ids = [s.id for s in self.services] + [s.id for s in self.hidden_services]
        duplicates = {i for i in ids if ids.count(i) > 1}
        if duplicates:
            raise ValueError(f"Duplicate service ids: {sorted(duplicates)}")
        return self


def default_catalog_config() -> CatalogConfig:
    """Catalog built from the seed data in barbershop.config."""
    from barbershop import config

    return CatalogConfig(
        business=BusinessConfig(**config.BUSINESS_CONFIG),
        services=[ServiceConfig(**s) for s in config.SERVICES],
        hidden_services=[ServiceConfig(**s) for s in config.HIDDEN_SERVICES],
        professionals=[ProfessionalConfig(**p) for p in config.PROFESSIONALS],
    )
