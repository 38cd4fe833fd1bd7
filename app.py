import os
import logging

import click
from flask import Flask, jsonify
from flask_cors import CORS
from sqlalchemy.exc import SQLAlchemyError

from config import DEFAULT_SECRET_KEY, config_by_name
from errors import HabitError
from models import db
from store import init_store
from Authentication import auth_bp, generate_token
from Habit import habits_bp
from Analysis import analysis_bp

logger = logging.getLogger(__name__)


def create_app(config_name=None):
    env_name = (config_name or os.getenv("APP_ENV") or "development").lower()
    config_class = config_by_name.get(env_name, config_by_name["development"])

    # Initialize Flask app
    app = Flask(__name__)
    app.config.from_object(config_class)

    if env_name == "production" and app.config.get("JWT_SECRET_KEY") in (None, "", DEFAULT_SECRET_KEY):
        logger.error("JWT_SECRET_KEY environment variable is not set")
        raise ValueError("JWT_SECRET_KEY environment variable is required")

    # Configure logging
    logging.basicConfig(level=app.config["LOG_LEVEL"])

    CORS(app, resources={r"/api/*": {
        "origins": app.config["FRONTEND_URL"],
        "methods": ["GET", "POST", "DELETE", "OPTIONS"],
        "allow_headers": ["Content-Type", "Authorization"]
    }})
    db.init_app(app)
    init_store(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(habits_bp)
    app.register_blueprint(analysis_bp)
    register_error_handlers(app)
    register_commands(app)

    @app.route("/api/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"}), 200

    # Create database tables
    with app.app_context():
        db.create_all()

    logger.debug(f"App created with {config_class.__name__}")
    return app


def register_error_handlers(app):
    @app.errorhandler(HabitError)
    def handle_habit_error(e):
        if e.status_code >= 500:
            logger.error(f"{type(e).__name__}: {e.message}")
        else:
            logger.debug(f"{type(e).__name__}: {e.message}")
        return jsonify({"message": e.message}), e.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e):
        logger.error(f"Database error: {str(e)}")
        db.session.rollback()
        return jsonify({"message": "Database error"}), 500


def register_commands(app):
    @app.cli.command("issue-token")
    @click.argument("user_id")
    @click.option("--email", default="", help="Email claim to embed in the token.")
    def issue_token(user_id, email):
        """Print a signed bearer token for local development."""
        click.echo(generate_token(user_id, email))


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=int(os.getenv("PORT", 5000)))
