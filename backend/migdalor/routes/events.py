# Overview: Flask API routes for event definitions; parses input and returns JSON responses.

"""
Event Routes

Creating an event materializes its instances; editing the schedule of an
event reconciles its future instances. Both happen inside the request.

Authentication is handled in front of this service.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import event_service
from ..services.event_service import EventError, EventNotFoundError
from migdalor.time_utils import parse_iso_datetime


events_bp = Blueprint("events", __name__, url_prefix="/api/events")


@events_bp.post("")
def create_event_route():
    data = request.get_json(silent=True) or {}
    data.pop("now", None)
    try:
        event = event_service.create_event(**data)
        return jsonify({"event": event.to_dict()}), 201
    except EventError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create event")
        return jsonify({"error": "Failed to create event"}), 500


@events_bp.put("/<int:event_id>")
def update_event_route(event_id: int):
    data = request.get_json(silent=True) or {}
    data.pop("now", None)
    try:
        event = event_service.update_event(event_id, **data)
        return jsonify({"event": event.to_dict()})
    except EventNotFoundError:
        return jsonify({"error": "Event not found"}), 404
    except EventError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update event")
        return jsonify({"error": "Failed to update event"}), 500


@events_bp.delete("/<int:event_id>")
def delete_event_route(event_id: int):
    try:
        event_service.delete_event(event_id)
        return jsonify({"deleted": True})
    except EventNotFoundError:
        return jsonify({"error": "Event not found"}), 404
    except Exception:
        current_app.logger.exception("Failed to delete event")
        return jsonify({"error": "Failed to delete event"}), 500


@events_bp.get("/<int:event_id>/instances")
def list_instances_route(event_id: int):
    try:
        start = parse_iso_datetime(request.args.get("start"))
        end = parse_iso_datetime(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start and end must be ISO-8601 datetimes"}), 400

    try:
        instances = event_service.list_instances(event_id, start=start, end=end)
    except EventNotFoundError:
        return jsonify({"error": "Event not found"}), 404
    return jsonify({"instances": [i.to_dict() for i in instances]})
