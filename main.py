"""
Gigtrip – main application entry point

* Flask app + Socket.IO (threading mode); streams, searches and chat saves
  run as Socket.IO background tasks.
* The Socket.IO path is `/travel/socket.io/` and the chat namespace is
  `/travel/ws`.
"""

import os
import logging

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from dotenv import load_dotenv

# --------------------------------------------------------------------------- #
# Environment & logging
# --------------------------------------------------------------------------- #
load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------- #
# Flask initialisation
# --------------------------------------------------------------------------- #
app = Flask(__name__)

flask_secret_key = os.getenv("FLASK_SECRET_KEY") or os.urandom(32).hex()
if "FLASK_SECRET_KEY" not in os.environ:
    logger.warning("No FLASK_SECRET_KEY found. Generated a temporary key.")
app.secret_key = flask_secret_key

app.config.update(
    SESSION_COOKIE_SECURE=False,
    SESSION_COOKIE_HTTPONLY=True,
    SESSION_COOKIE_SAMESITE="Lax",
    PERMANENT_SESSION_LIFETIME=86400,
)

# CORS for local dev / cross‑origin front‑end requests
CORS(app, origins="*", supports_credentials=True)

# --------------------------------------------------------------------------- #
# Socket.IO
# --------------------------------------------------------------------------- #
socketio = SocketIO(
    app,
    cors_allowed_origins="*",
    async_mode="threading",
    logger=True,
    engineio_logger=False,
    path="travel/socket.io/",
)
logger.info("Socket.IO initialised (async_mode=threading)")

# --------------------------------------------------------------------------- #
# Blueprints & WebSocket handlers
# --------------------------------------------------------------------------- #
from gigtrip.routes.travel import create_travel_blueprint  # noqa: E402
from gigtrip.routes.websocket import register_websocket_handlers  # noqa: E402
from gigtrip.api.config import get_port  # noqa: E402

app.register_blueprint(create_travel_blueprint())
register_websocket_handlers(socketio)


@app.route("/debug")
def debug():
    """Simple JSON health endpoint."""
    from gigtrip.api.conversation.session_manager import get_session_manager

    return {
        "status": "ok",
        "socketio_initialized": True,
        "chats": get_session_manager().get_stats(),
        "endpoints": {
            "websocket_namespace": "/travel/ws",
        },
    }


# --------------------------------------------------------------------------- #
# Local development runner ( `python main.py` )
# --------------------------------------------------------------------------- #
if __name__ == "__main__":
    port = get_port()
    logger.info("Starting gigtrip on http://localhost:%d", port)
    socketio.run(app, host="0.0.0.0", port=port, debug=False, allow_unsafe_werkzeug=True)

__all__ = ["app", "socketio"]
