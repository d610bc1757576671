from flask import Flask, jsonify
from flask_cors import CORS
from flasgger import Swagger
from pymongo.errors import PyMongoError
import logging
from .config import Config, test_mongo_connection, ensure_indexes
from .errors import DataAccessError
from .extensions import init_redis, limiter, mongo, socketio
from .commands import register_commands, seed_primary_admin


def create_app(config_object=Config, mongo_client=None):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s %(message)s'
    )

    CORS(app,
         resources={r"/*": {"origins": app.config['CORS_ORIGINS']}},
         supports_credentials=True,
    )
    app.config['CORS_ALLOW_HEADERS'] = ["Content-Type", "Authorization"]
    app.config['CORS_ALLOW_METHODS'] = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

    if mongo_client is not None:
        # injected client (tests, scripts): bind it without opening a new connection
        mongo.cx = mongo_client
        mongo.db = mongo_client[app.config['MONGO_DB']]
    else:
        if not app.config.get('MONGO_URI'):
            raise RuntimeError("MONGO_URI not set in the environment or config")
        if app.config.get('CHECK_MONGO_ON_START'):
            test_mongo_connection(app.config['MONGO_URI'])
        mongo.init_app(app, uri=f"{app.config['MONGO_URI'].rstrip('/')}/{app.config['MONGO_DB']}")

    app.mongo = mongo
    ensure_indexes(app.mongo)

    seed_primary_admin(app)

    init_redis(app.config.get('REDIS_URL'))
    limiter.init_app(app)

    from portal.routes.auth import auth_bp
    from portal.routes.batches import batches_bp
    from portal.routes.participants import participants_bp, supervisor_bp
    from portal.routes.trainers import trainers_bp
    from portal.routes.exams import courses_bp, exams_bp, student_bp
    from portal.routes.links import links_bp
    from portal.routes.staff import staff_bp
    from portal.routes.health import health_bp

    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(batches_bp, url_prefix='/api/batches')
    app.register_blueprint(participants_bp, url_prefix='/api/admin/users')
    app.register_blueprint(supervisor_bp, url_prefix='/api/supervisor')
    app.register_blueprint(trainers_bp, url_prefix='/api/trainers')
    app.register_blueprint(courses_bp, url_prefix='/api/courses')
    app.register_blueprint(exams_bp, url_prefix='/api/exams')
    app.register_blueprint(student_bp, url_prefix='/api/student')
    app.register_blueprint(staff_bp, url_prefix='/api/staff')
    app.register_blueprint(links_bp, url_prefix='/api/links')
    app.register_blueprint(health_bp)

    socketio.init_app(app, message_queue=app.config.get('REDIS_URL'))
    swagger_config = {
        "headers": [],
        "specs": [
            {
                "endpoint": 'apispec',
                "route": '/apispec.json',
                "rule_filter": lambda rule: True,
                "model_filter": lambda tag: True,
            }
        ],
        "static_url_path": "/flasgger_static",
        "swagger_ui": True,
        "specs_route": "/docs/"
    }
    Swagger(app, config=swagger_config)
    register_commands(app)

    @app.errorhandler(DataAccessError)
    def data_access_error(error):
        return jsonify({'error': error.message}), 503

    @app.errorhandler(PyMongoError)
    def database_error(error):
        app.logger.exception("Database error")
        return jsonify({'error': 'Database unavailable'}), 503

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Resource not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({'error': 'Internal server error'}), 500

    @app.errorhandler(429)
    def ratelimit_handler(e):
        return jsonify({'error': f'Rate limit exceeded: {e.description}'}), 429

    return app
