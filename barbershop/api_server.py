"""HTTP API for the barbershop booking engine.

Flask server with endpoints for:
- Catalog listing (services, professionals)
- Availability checking
- Appointment creation, cancellation and completion
- Admin: blocking time, agenda, wiping appointments, professional hours,
  catalog reset

Run with: python -m barbershop.api_server
"""
from datetime import datetime

from flask import Flask, jsonify, request
from flask_cors import CORS

from barbershop import config
from barbershop.booking import (
    AppointmentNotFoundError,
    BookingService,
    ConflictError,
    StoreError,
    ValidationError,
)
from barbershop.catalog import Catalog, CatalogError
from barbershop.links import confirmation_whatsapp_link, google_calendar_link
from barbershop.logging_config import RequestIDMiddleware, get_logger, setup_structured_logging
from barbershop.models import Appointment
from barbershop.store import build_store

logger = get_logger(__name__)


def _error(message: str, status: int, **extra):
    body = {"success": False, "error": message}
    body.update(extra)
    return jsonify(body), status


def _appointment_view(service: BookingService, appointment: Appointment) -> dict:
    """Wire dict plus display names and share links."""
    catalog = service.catalog
    business = catalog.get_business_config()
    booked = catalog.find_service(appointment.service_id)
    professional = catalog.find_professional(appointment.professional_id)
    duration = appointment.duration_minutes or catalog.durations().get(
        appointment.service_id, config.DEFAULT_DURATION_MINUTES
    )
    service_name = booked.name if booked else appointment.service_id

    view = appointment.to_wire()
    view["serviceName"] = service_name
    view["professionalName"] = professional.name if professional else appointment.professional_id
    if not catalog.is_hidden(appointment.service_id):
        view["whatsappUrl"] = confirmation_whatsapp_link(appointment, business)
        view["calendarUrl"] = google_calendar_link(appointment, service_name, duration, business.name)
    return view


def create_app(service: BookingService = None) -> Flask:
    """
    Build the Flask app.

    Args:
        service: Booking engine to expose. Defaults to one wired from
                 barbershop.config (store backend chosen here, once).
    """
    if service is None:
        service = BookingService(Catalog.from_directory(), build_store())

    app = Flask(__name__)
    CORS(app)
    app.wsgi_app = RequestIDMiddleware(app.wsgi_app)
    app.extensions["booking_service"] = service

    @app.errorhandler(ValidationError)
    def handle_validation(exc):
        return _error(str(exc), 400)

    @app.errorhandler(CatalogError)
    def handle_catalog(exc):
        return _error(str(exc), 400)

    @app.errorhandler(AppointmentNotFoundError)
    def handle_not_found(exc):
        return _error(str(exc), 404)

    @app.errorhandler(ConflictError)
    def handle_conflict(exc):
        return _error(str(exc), 409)

    @app.errorhandler(StoreError)
    def handle_store(exc):
        logger.error("store_error", error=str(exc))
        return _error("Appointment store unavailable. Please try again.", 503)

    @app.errorhandler(TimeoutError)
    def handle_timeout(exc):
        logger.error("booking_lock_timeout", error=str(exc))
        return _error("Server busy. Please try again.", 503)

    @app.route("/services", methods=["GET"])
    def get_services():
        """GET /services - Customer-facing services."""
        services = [s.model_dump(mode="json", by_alias=True) for s in service.catalog.get_services()]
        return jsonify({"success": True, "services": services, "total": len(services)})

    @app.route("/professionals", methods=["GET"])
    def get_professionals():
        """GET /professionals?service_id=c1 - Professionals, optionally by service."""
        service_id = request.args.get("service_id")
        if service_id:
            professionals = service.catalog.professionals_for_service(service_id)
        else:
            professionals = service.catalog.get_professionals()
        data = [p.model_dump(mode="json", by_alias=True) for p in professionals]
        return jsonify({"success": True, "professionals": data, "total": len(data)})

    @app.route("/availability", methods=["GET"])
    def get_availability():
        """GET /availability?date=2024-06-10&professional_id=barber1&service_id=c1"""
        missing = [
            name for name in ("date", "professional_id", "service_id")
            if not request.args.get(name)
        ]
        if missing:
            return _error(f"Missing required parameter(s): {', '.join(missing)}", 400)

        date = request.args["date"]
        professional_id = request.args["professional_id"]
        service_id = request.args["service_id"]

        slots = service.get_available_slots(date, professional_id, service_id)
        return jsonify({
            "success": True,
            "date": date,
            "professionalId": professional_id,
            "serviceId": service_id,
            "slots": slots,
            "total": len(slots)
        })

    @app.route("/appointments", methods=["POST"])
    def create_appointment():
        """POST /appointments - Create a new appointment.

        Expected JSON body:
        {
            "professionalId": "barber1",
            "serviceId": "c1",
            "date": "2024-06-10",
            "startTime": "10:00",
            "customerName": "John Doe",
            "customerPhone": "79 99999-0000"
        }
        """
        data = request.get_json(silent=True)
        if not data:
            return _error("Request body is required", 400)

        appointment = service.create_appointment(data)
        return jsonify({
            "success": True,
            "appointment": _appointment_view(service, appointment),
            "message": f"Appointment confirmed for {appointment.date} at {appointment.start_time}"
        }), 201

    @app.route("/appointments", methods=["GET"])
    def list_appointments():
        """GET /appointments?professional_id=&when=today|upcoming|all&search="""
        appointments = service.agenda(
            professional_id=request.args.get("professional_id"),
            when=request.args.get("when", "all"),
            search=request.args.get("search", "")
        )
        return jsonify({
            "success": True,
            "appointments": [_appointment_view(service, a) for a in appointments],
            "total": len(appointments)
        })

    @app.route("/appointments/<appointment_id>/cancel", methods=["PATCH"])
    def cancel_appointment(appointment_id):
        """PATCH /appointments/<id>/cancel - Cancel (status change, never delete)."""
        appointment = service.cancel_appointment(appointment_id)
        return jsonify({"success": True, "appointment": _appointment_view(service, appointment)})

    @app.route("/appointments/<appointment_id>/complete", methods=["PATCH"])
    def complete_appointment(appointment_id):
        """PATCH /appointments/<id>/complete - Mark as completed."""
        appointment = service.complete_appointment(appointment_id)
        return jsonify({"success": True, "appointment": _appointment_view(service, appointment)})

    @app.route("/appointments", methods=["DELETE"])
    def clear_appointments():
        """DELETE /appointments - Wipe all appointments (admin)."""
        service.clear_all()
        return jsonify({"success": True, "message": "All appointments deleted"})

    @app.route("/blocks", methods=["POST"])
    def block_slot():
        """POST /blocks - Block a professional's time with a hidden service.

        Expected JSON body:
        {"professionalId": "barber1", "date": "2024-06-10",
         "startTime": "12:00", "serviceId": "block-60", "note": "Lunch"}
        """
        data = request.get_json(silent=True) or {}
        missing = [
            name for name in ("professionalId", "date", "startTime", "serviceId")
            if not data.get(name)
        ]
        if missing:
            return _error(f"Missing required field(s): {', '.join(missing)}", 400)

        appointment = service.block_slot(
            professional_id=data["professionalId"],
            date=data["date"],
            start_time=data["startTime"],
            block_service_id=data["serviceId"],
            note=data.get("note")
        )
        return jsonify({"success": True, "appointment": _appointment_view(service, appointment)}), 201

    @app.route("/professionals/<professional_id>/hours", methods=["PATCH"])
    def update_professional_hours(professional_id):
        """PATCH /professionals/<id>/hours - {"openTime": "09:00", "closeTime": "20:00"}

        Only the keys present are changed; null clears an override.
        """
        data = request.get_json(silent=True) or {}
        hours = {
            field: data[key]
            for key, field in (("openTime", "open_time"), ("closeTime", "close_time"))
            if key in data
        }
        if not hours:
            return _error("Body must contain openTime and/or closeTime", 400)

        professional = service.catalog.update_professional_hours(professional_id, **hours)
        return jsonify({"success": True, "professional": professional.model_dump(mode="json", by_alias=True)})

    @app.route("/catalog/reset", methods=["POST"])
    def reset_catalog():
        """POST /catalog/reset - Discard admin edits, restore the seed catalog (admin)."""
        service.catalog.reset_to_defaults()
        return jsonify({"success": True, "message": "Catalog restored to defaults"})

    @app.route("/health", methods=["GET"])
    def health_check():
        """GET /health - Liveness plus store reachability."""
        try:
            service.store.ping()
        except StoreError as e:
            logger.warning("health_store_unreachable", error=str(e))
            return jsonify({
                "success": False,
                "status": "degraded",
                "store": "unreachable",
                "timestamp": datetime.now().isoformat()
            }), 503

        return jsonify({
            "success": True,
            "status": "healthy",
            "store": "ok",
            "timestamp": datetime.now().isoformat()
        })

    return app


def main():
    setup_structured_logging(config.LOG_LEVEL)
    app = create_app()
    logger.info("api_server_starting", port=config.API_PORT, store_backend=config.STORE_BACKEND)
    app.run(host="0.0.0.0", port=config.API_PORT)


if __name__ == "__main__":
    main()
