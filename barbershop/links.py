"""Share links for appointments (WhatsApp chat, Google Calendar event).

Only URL templates: nothing here sends anything.
"""
import re
from typing import Optional
from urllib.parse import quote, urlencode

from barbershop.catalog_config import BusinessConfig
from barbershop.models import Appointment
from barbershop.timeutils import format_minutes, parse_date, parse_minutes

WHATSAPP_BASE = "https://wa.me/"
GOOGLE_CALENDAR_BASE = "https://calendar.google.com/calendar/render"
COUNTRY_CODE = "55"  # Brazil


def phone_digits(phone: str) -> str:
    return re.sub(r"\D", "", phone or "")


def whatsapp_link(phone: str, message: Optional[str] = None, country_code: str = COUNTRY_CODE) -> str:
    """wa.me link for a local phone number, optionally with a prefilled message."""
    url = f"{WHATSAPP_BASE}{country_code}{phone_digits(phone)}"
    if message:
        url += f"?text={quote(message)}"
    return url


def confirmation_message(appointment: Appointment, business: BusinessConfig) -> str:
    day = parse_date(appointment.date)
    return (
        f"Hi {appointment.customer_name}, this is {business.name}. "
        f"Confirming your appointment on {day.strftime('%d/%m')} at "
        f"{appointment.start_time}. All good?"
    )


def confirmation_whatsapp_link(appointment: Appointment, business: BusinessConfig) -> str:
    return whatsapp_link(
        appointment.customer_phone,
        confirmation_message(appointment, business)
    )


def google_calendar_link(
    appointment: Appointment,
    service_name: str,
    duration_minutes: int,
    location: str
) -> str:
    """'Add to Google Calendar' template link covering the booked interval."""
    day = appointment.date.replace("-", "")
    start = parse_minutes(appointment.start_time)
    # Calendar events cannot cross midnight here; clamp to the same day
    end = min(start + duration_minutes, 23 * 60 + 59)

    def stamp(minutes: int) -> str:
        return f"{day}T{format_minutes(minutes).replace(':', '')}00"

    params = {
        "action": "TEMPLATE",
        "text": f"{service_name} - {appointment.customer_name} ({appointment.customer_phone})",
        "dates": f"{stamp(start)}/{stamp(end)}",
        "details": f"Customer: {appointment.customer_name} - Phone: {appointment.customer_phone}",
        "location": location,
    }
    return f"{GOOGLE_CALENDAR_BASE}?{urlencode(params, quote_via=quote)}"
