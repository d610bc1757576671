import os
import logging
from dotenv import load_dotenv
from portal import create_app
from portal.extensions import socketio

load_dotenv()
app = create_app()
logger = logging.getLogger(__name__)

if __name__ == "__main__":
    host = os.environ.get('FLASK_HOST', '0.0.0.0')
    port = int(os.environ.get('PORT', 5000))
    debug = os.environ.get('FLASK_ENV') == 'development'

    logger.info(f"Starting academy portal on {host}:{port} (debug={debug})")

    socketio.run(app, host=host, port=port, debug=debug, allow_unsafe_werkzeug=debug)
