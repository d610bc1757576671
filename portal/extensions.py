from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_pymongo import PyMongo
from flask_socketio import SocketIO
from urllib.parse import urlparse
import logging
import redis

logger = logging.getLogger(__name__)

redis_client = None

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["2000 per day", "200 per hour"],
)

mongo = PyMongo()

socketio = SocketIO(cors_allowed_origins="*", async_mode="threading")


def api_rate_limit(limit="10/minute"):
    def decorator(f):
        return limiter.limit(limit)(f)
    return decorator


def init_redis(redis_url):
    global redis_client
    if not redis_url:
        redis_client = None
        return None
    parsed = urlparse(redis_url)
    try:
        redis_client = redis.Redis(
            host=parsed.hostname,
            port=parsed.port,
            username=parsed.username,
            password=parsed.password,
            decode_responses=True,
            ssl=parsed.scheme == "rediss"
        )
        redis_client.ping()
        logger.info("Connected to Redis successfully")
    except redis.exceptions.RedisError as e:
        logger.warning(f"Failed to connect to Redis: {e}")
        redis_client = None
    return redis_client
