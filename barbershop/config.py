"""Configuration for the barbershop scheduling engine.

Seed catalog data lives here; runtime settings come from the environment
(a local .env file is honoured). Admin edits to the catalog are persisted
separately by ConfigManager and take precedence over these defaults.
"""
import os

from dotenv import load_dotenv

load_dotenv()

BUSINESS_CONFIG = {
    "name": "Estudio 3M",
    "city": "Aracaju",
    "phone": "79996604308",
    "open_time": "08:00",
    "close_time": "18:00",
    "days_open": [1, 2, 3, 4, 5, 6],  # 0=Sunday .. 6=Saturday
    "slot_interval": 30,
    "currency": "BRL",
    "timezone": "America/Sao_Paulo",
    "saturday_close_time": "17:00",
}

SERVICES = [
    # Haircuts
    {"id": "c1", "name": "Fade Cut", "duration_minutes": 30, "price": 35},
    {"id": "c2", "name": "Scissor Cut", "duration_minutes": 30, "price": 35},
    {"id": "c3", "name": "Classic Cut", "duration_minutes": 30, "price": 30},
    {"id": "c4", "name": "Simple Cut", "duration_minutes": 25, "price": 25},
    # Beard
    {"id": "b1", "name": "Simple Beard", "duration_minutes": 20, "price": 20},
    {"id": "b2", "name": "Styled Beard", "duration_minutes": 30, "price": 20},
    # Combos
    {"id": "cb1", "name": "Simple Cut + Beard", "duration_minutes": 30, "price": 45},
    {"id": "cb2", "name": "Cut + Beard + Eyebrows", "duration_minutes": 50, "price": 60},
    # Eyebrows
    {"id": "s1", "name": "Simple Eyebrows", "duration_minutes": 15, "price": 20},
    {"id": "s2", "name": "Henna Eyebrows", "duration_minutes": 20, "price": 30},
    # Nails
    {"id": "u1", "name": "Nails (Hands or Feet)", "duration_minutes": 30, "price": 25},
    {"id": "u2", "name": "Nails (Hands and Feet)", "duration_minutes": 60, "price": 45},
    # Micropigmentation
    {"id": "m1", "name": "Hair Stroke Micropigmentation", "duration_minutes": 120, "price": 399},
    {"id": "m2", "name": "Micropigmentation Touch-up", "duration_minutes": 90, "price": 250},
]

# Administrative blocks: never offered to customers, always price 0
HIDDEN_SERVICES = [
    {"id": "block-30", "name": "Block (30 min)", "duration_minutes": 30, "price": 0},
    {"id": "block-60", "name": "Block (1 hour)", "duration_minutes": 60, "price": 0},
    {"id": "block-90", "name": "Block (1h 30m)", "duration_minutes": 90, "price": 0},
    {"id": "block-120", "name": "Block (2 hours)", "duration_minutes": 120, "price": 0},
    {"id": "block-240", "name": "Block (4 hours)", "duration_minutes": 240, "price": 0},
]

_NAIL_SERVICE_IDS = ["u1", "u2"]
_MICRO_SERVICE_IDS = ["m1", "m2"]
_BARBER_SERVICE_IDS = [
    s["id"] for s in SERVICES
    if s["id"] not in _NAIL_SERVICE_IDS and s["id"] not in _MICRO_SERVICE_IDS
]

PROFESSIONALS = [
    {
        "id": "barber1",
        "name": "Luis",
        "service_ids": _BARBER_SERVICE_IDS,
        "phone": "79999089296",
    },
    {
        "id": "barber2",
        "name": "Marcio",
        "service_ids": _BARBER_SERVICE_IDS + _MICRO_SERVICE_IDS,
        "phone": "79996604308",
        "open_time": "09:00",
    },
    {
        "id": "barber3",
        "name": "Junior",
        "service_ids": _BARBER_SERVICE_IDS,
        "phone": "79996604308",
    },
    {
        "id": "barber4",
        "name": "Aline",
        "service_ids": _NAIL_SERVICE_IDS,
        "phone": "79996124480",
    },
]

# Duration assumed for appointments whose service no longer exists
DEFAULT_DURATION_MINUTES = 30

# Store selection (local | remote | sql), decided once at startup
STORE_BACKEND = os.getenv("STORE_BACKEND", "local").lower()
STORE_PATH = os.getenv("STORE_PATH", "data/appointments.json")
CATALOG_PATH = os.getenv("CATALOG_PATH", "data/catalog")
STORE_TIMEOUT_SECONDS = int(os.getenv("STORE_TIMEOUT_SECONDS", "15"))

# Remote store (PostgREST / Supabase)
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_KEY = os.getenv("SUPABASE_KEY", "")
APPOINTMENTS_TABLE = os.getenv("APPOINTMENTS_TABLE", "appointments")

# SQL store
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///appointments.db")

# Availability reads fall back to "no existing appointments" when the
# store is down. Off unless explicitly enabled.
ALLOW_DEGRADED_READS = os.getenv("ALLOW_DEGRADED_READS", "false").lower() == "true"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# API Configuration
API_PORT = int(os.getenv("API_PORT", "5000"))
