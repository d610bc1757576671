from flask import Blueprint, jsonify, current_app
from pymongo.errors import PyMongoError
import redis
from portal import extensions
from portal.utils.serialization import utcnow

health_bp = Blueprint("health", __name__)


@health_bp.route("/health", methods=["GET"])
def health_check():
    status = {
        "timestamp": utcnow().isoformat(),
        "services": {
            "mongo": False,
            "redis": None,
        },
        "summary": "OK"
    }

    # --- MongoDB check ---
    try:
        db = current_app.mongo.db
        db.command("ping")
        status["services"]["mongo"] = True
    except PyMongoError as e:
        status["services"]["mongo_error"] = str(e)
        status["summary"] = "ERROR"

    # --- Redis check (only when configured for rate-limit storage) ---
    if current_app.config.get("REDIS_URL"):
        try:
            client = extensions.redis_client
            if client and client.ping():
                status["services"]["redis"] = True
            else:
                status["services"]["redis"] = False
                status["services"]["redis_error"] = "Redis client not initialized"
                status["summary"] = "ERROR"
        except redis.exceptions.ConnectionError as e:
            status["services"]["redis"] = False
            status["services"]["redis_error"] = str(e)
            status["summary"] = "ERROR"

    return jsonify(status), 200 if status["summary"] == "OK" else 500
