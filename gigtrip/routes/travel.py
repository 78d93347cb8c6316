# gigtrip/routes/travel.py
"""Travel routes and blueprint configuration."""

import logging

from flask import Blueprint, jsonify, request, session

from gigtrip.api.config import get_google_maps_config, get_session_config
from gigtrip.api.models import Location
from gigtrip.api.services.map_service import MapService
from gigtrip.api.services.search_service import SearchService
from gigtrip.api.services.session_service import ChatListModel

logger = logging.getLogger(__name__)


def current_user_id():
    """Signed-in user id from the Flask session, or None."""
    return session.get("user_id")


def _float_arg(name, default=None):
    value = request.args.get(name)
    if value in (None, ""):
        return default
    return float(value)


def create_travel_blueprint(store=None, search_service=None):
    """Create and configure the travel blueprint.

    Args:
        store: Chat store; the global one is used when omitted
        search_service: Event/place search service

    Returns:
        Configured Flask Blueprint
    """
    travel_bp = Blueprint("travel", __name__, url_prefix="/travel")

    def get_store():
        if store is not None:
            return store
        from gigtrip.api.database import get_chat_store
        return get_chat_store()

    def get_search():
        return search_service or SearchService()

    @travel_bp.route("/api/config")
    def api_config():
        """Return Google Maps configuration for frontend."""
        config = get_google_maps_config()

        if config.get("api_key"):
            return jsonify({
                "auth_type": "api_key",
                "google_maps_api_key": config["api_key"],
            })
        else:
            return jsonify({
                "error": "No Google Maps API key configured"
            }), 500

    @travel_bp.route("/api/events")
    def api_events():
        """Search events by keyword."""
        keyword = (request.args.get("keyword") or "").strip()
        if not keyword:
            return jsonify({"error": "keyword is required"}), 400

        outcome = get_search().search_events(keyword)
        events = [e.to_dict() for e in outcome.items]
        if outcome.failed:
            return jsonify({"error": outcome.error or "Event search failed", "events": []}), 502
        return jsonify({"events": events})

    @travel_bp.route("/api/places")
    def api_places():
        """Search places near a point."""
        try:
            lat = _float_arg("lat")
            lng = _float_arg("lng")
            radius = int(request.args.get("radius", 1500))
            min_rating = _float_arg("minRating", 0.0)
            max_price = int(request.args.get("maxPrice", 4))
        except ValueError:
            return jsonify({"error": "Invalid numeric parameter", "places": []}), 400

        center = None
        if lat is not None and lng is not None:
            if not MapService.validate_coordinates(lat, lng):
                return jsonify({"error": "Invalid coordinates", "places": []}), 400
            center = Location(lat=lat, lng=lng)

        outcome = get_search().search_places(
            center,
            request.args.get("type", "restaurant"),
            radius,
            keyword=request.args.get("keyword") or None,
            min_rating=min_rating,
            max_price=max_price,
        )
        if outcome.failed:
            return jsonify({"error": outcome.error or "Place search failed", "places": []}), 502
        return jsonify({"places": [p.to_dict() for p in outcome.items], "reason": outcome.reason})

    @travel_bp.route("/api/distance", methods=["POST"])
    def api_distance():
        """Distances from an origin to several destinations."""
        data = request.get_json(silent=True) or {}
        origin = Location.from_dict(data.get("origin"))
        destinations = data.get("destinations") or []
        if origin is None:
            return jsonify({"error": "origin with lat/lng is required"}), 400
        if not isinstance(destinations, list):
            return jsonify({"error": "destinations must be a list"}), 400

        try:
            distances = MapService.distances_from(origin, destinations)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        if distances is None:
            return jsonify({"error": "Distance lookup failed", "distances": []}), 502
        return jsonify({"distances": distances})

    # ------------------------------------------------------------------
    # Chat records
    # ------------------------------------------------------------------

    def chat_list():
        return ChatListModel(get_store(), current_user_id())

    @travel_bp.route("/api/chats")
    def api_chats():
        """Sidebar list: pinned first, then most recent."""
        if not current_user_id():
            return jsonify({"chats": []})
        return jsonify({"chats": chat_list().reload()})

    @travel_bp.route("/api/chats/<chat_id>", methods=["GET", "DELETE"])
    def api_chat(chat_id):
        user_id = current_user_id()
        if not user_id:
            return jsonify({"error": "Not signed in"}), 401

        if request.method == "DELETE":
            model = chat_list()
            model.reload()
            return jsonify({"chats": model.delete(chat_id)})

        try:
            record = get_store().get_chat(user_id, chat_id)
        except Exception as e:
            logger.error(f"Failed to read chat {chat_id}: {e}")
            return jsonify({"error": str(e)}), 500
        if record is None:
            return jsonify({"error": "Chat not found"}), 404

        record["createdAt"] = record["createdAt"].isoformat() if record.get("createdAt") else None
        record["updatedAt"] = record["updatedAt"].isoformat() if record.get("updatedAt") else None
        return jsonify(record)

    @travel_bp.route("/api/chats/<chat_id>/rename", methods=["POST"])
    def api_rename_chat(chat_id):
        if not current_user_id():
            return jsonify({"error": "Not signed in"}), 401
        title = ((request.get_json(silent=True) or {}).get("title") or "").strip()
        if not title:
            return jsonify({"error": "title is required"}), 400
        model = chat_list()
        model.reload()
        return jsonify({"chats": model.rename(chat_id, title)})

    @travel_bp.route("/api/chats/<chat_id>/pin", methods=["POST"])
    def api_pin_chat(chat_id):
        if not current_user_id():
            return jsonify({"error": "Not signed in"}), 401
        model = chat_list()
        model.reload()
        return jsonify({"chats": model.toggle_pin(chat_id)})

    # ------------------------------------------------------------------
    # Debug auth
    # ------------------------------------------------------------------

    @travel_bp.route("/api/login", methods=["POST"])
    def api_login():
        """Sign in the debug user."""
        session["user_id"] = get_session_config()["debug_user_id"]
        session.modified = True
        logger.info(f"Signed in {session['user_id']}")
        return jsonify({"user_id": session["user_id"]})

    @travel_bp.route("/api/logout", methods=["POST"])
    def api_logout():
        session.pop("user_id", None)
        return jsonify({"status": "signed_out"})

    @travel_bp.route("/health")
    def health():
        """Health check endpoint."""
        return jsonify({"status": "ok", "service": "travel"})

    return travel_bp


__all__ = ['create_travel_blueprint', 'current_user_id']
