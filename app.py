import atexit

from flask import Flask
from flask_cors import CORS
from dotenv import load_dotenv

load_dotenv()

import config
from database import close_db
from services.wiring import build_services
from views.novel import novel_bp
from views.status import status_bp

def configure_cors(flask_app):
    """Restrict CORS to the configured origins; allow any origin when unset."""
    if config.CORS_ALLOW_ORIGINS:
        CORS(
            flask_app,
            origins=config.CORS_ALLOW_ORIGINS,
            supports_credentials=config.CORS_SUPPORTS_CREDENTIALS,
        )
    else:
        CORS(flask_app)


app = Flask(__name__)
configure_cors(app)

services = build_services()
app.extensions['novel_service'] = services.novel_service
app.extensions['provider_registry'] = services.registry
atexit.register(services.http.close)

app.register_blueprint(novel_bp)
app.register_blueprint(status_bp)


@app.teardown_appcontext
def teardown_db(exception):
    close_db(exception)


@app.route("/healthz", methods=["GET"])
def healthz():
    return {"status": "ok"}, 200
