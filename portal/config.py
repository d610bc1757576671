import os
from datetime import timedelta
from dotenv import load_dotenv
from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure
from bson import ObjectId
from bson.errors import InvalidId
import logging

load_dotenv()
logger = logging.getLogger(__name__)


class Config:

    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_ENV') == 'development'
    TESTING = False

    MONGO_URI = os.getenv('MONGO_URI')
    MONGO_DB = os.getenv('MONGO_DB', 'academy_portal')
    CHECK_MONGO_ON_START = True

    REDIS_URL = os.getenv('REDIS_URL')
    RATELIMIT_STORAGE_URI = os.getenv('REDIS_URL', 'memory://')
    RATELIMIT_ENABLED = os.getenv('RATELIMIT_ENABLED', 'true').lower() == 'true'

    SESSION_TTL = timedelta(hours=int(os.getenv('SESSION_TTL_HOURS', 24)))

    CORS_ORIGINS = [
        o.strip() for o in os.getenv(
            'CORS_ORIGINS',
            'http://localhost:3000,http://127.0.0.1:3000'
        ).split(',') if o.strip()
    ]

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    MAX_CONTENT_LENGTH = 4 * 1024 * 1024

    # seeds the primary superadmin on a fresh database
    BOOTSTRAP_ADMIN_USERNAME = os.getenv('BOOTSTRAP_ADMIN_USERNAME')
    BOOTSTRAP_ADMIN_PASSWORD = os.getenv('BOOTSTRAP_ADMIN_PASSWORD')
    BOOTSTRAP_ADMIN_NAME = os.getenv('BOOTSTRAP_ADMIN_NAME', 'Administrator')


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    MONGO_URI = 'mongodb://localhost:27017'
    MONGO_DB = 'academy_portal_test'
    CHECK_MONGO_ON_START = False
    REDIS_URL = None
    RATELIMIT_STORAGE_URI = 'memory://'
    RATELIMIT_ENABLED = False
    LOG_LEVEL = 'WARNING'
    BOOTSTRAP_ADMIN_USERNAME = None
    BOOTSTRAP_ADMIN_PASSWORD = None


def test_mongo_connection(uri):
    try:
        client = MongoClient(uri, serverSelectionTimeoutMS=5000)
        client.admin.command("ping")
        logger.info("MongoDB connection successful")
    except ConnectionFailure as e:
        logger.error(f"Mongo connection failed: {e}")
        raise e


def ensure_indexes(mongo):
    """
    Ensure indexes exist for the portal collections (lookup + TTL).
    """
    db = mongo.db
    db.batches.create_index([("createdAt", DESCENDING)])
    db.registrations.create_index([("batch_id", ASCENDING), ("iitpNo", ASCENDING)])
    db.participants.create_index([("iitpNo", ASCENDING)], name="participant_iitp_no")
    db.participants.create_index([("enrolledCourses", ASCENDING)])
    for collection in ("superadmins", "trainers", "supervisors", "formadmins"):
        db[collection].create_index([("username", ASCENDING)], unique=True, name="unique_username")

    db.portal_sessions.create_index("jti", unique=True)
    db.portal_sessions.create_index("expires_at", expireAfterSeconds=0)
    logger.info('MongoDB indexes ensured.')


def to_objectid(value):
    if isinstance(value, ObjectId):
        return value
    return ObjectId(str(value))


def is_valid_objectid(value):
    try:
        ObjectId(str(value))
        return True
    except (InvalidId, TypeError):
        return False
