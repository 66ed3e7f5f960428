"""
API gateway: hosts the vision blueprints and health checks.
This is the local entrypoint for development.
"""

from flask import Flask, jsonify
from flask_cors import CORS
import os
import logging
import sys
from typing import Optional, Dict, Any
from dotenv import load_dotenv

# Basic console logging during API requests
logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")

def create_app(config_overrides: Optional[Dict[str, Any]] = None) -> Flask:
    """
    Application factory for creating the Flask app.

    Settings are read from the environment once here; request handlers only
    look at `app.config`.

    Args:
        config_overrides (dict, optional): Values applied on top of the
            environment settings (used by tests).

    Returns:
        Flask: The configured Flask application.
    """
    # Add the project root to Python path
    # This allows imports like 'from backend.vision_service.routes import vision_bp'
    sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

    from backend.vision_service.config import load_settings

    app = Flask(__name__)
    app.config.update(load_settings())
    if config_overrides:
        app.config.update(config_overrides)

    origins = app.config.get("CORS_ORIGINS", "*")
    if origins != "*":
        origins = [o.strip() for o in origins.split(",") if o.strip()]

    CORS(app, resources={
        r"/*": {
            "origins": origins,
            "methods": ["POST", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
        }
    })

    # --- REGISTER BLUEPRINTS ---
    try:
        from backend.vision_service.routes import vision_bp, uploads_bp

        app.register_blueprint(vision_bp, url_prefix="/vision")
        app.register_blueprint(uploads_bp)

        logging.info("All blueprints registered successfully.")

    except ImportError as e:
        logging.error(f"Failed to import blueprints. Module not found: {e}")
        sys.exit(1)

    # --- BASIC HEALTH CHECKPOINTS ---
    @app.route("/")
    def ping():
        """
        Root URL for simple 'online' check.
        """
        return jsonify({"status": "gateway_ok"}), 200

    @app.route("/health")
    def health():
        """
        Health check endpoint.
        """
        return jsonify({"status": "ok"}), 200

    return app

if __name__ == "__main__":
    load_dotenv()
    app = create_app()
    port = int(os.getenv("GATEWAY_PORT", 5050))
    app.run(host="0.0.0.0", port=port, debug=True)
