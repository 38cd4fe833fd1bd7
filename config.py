import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

DEFAULT_SECRET_KEY = "change-me"


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", DEFAULT_SECRET_KEY)
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///streaks.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Tokens are issued by the identity provider; we only verify them
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", SECRET_KEY)
    JWT_AUDIENCE = os.getenv("JWT_AUDIENCE")
    JWT_EXPIRES_HOURS = int(os.getenv("JWT_EXPIRES_HOURS", "1"))

    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

    HABIT_CACHE_TTL = int(os.getenv("HABIT_CACHE_TTL", "30"))
    RECENT_LOG_LIMIT = int(os.getenv("RECENT_LOG_LIMIT", "5"))
    ELAPSED_TICK_SECONDS = float(os.getenv("ELAPSED_TICK_SECONDS", "1"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")


class DevelopmentConfig(Config):
    DEBUG = True


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_SECRET_KEY = "test-secret"
    JWT_AUDIENCE = None
    ELAPSED_TICK_SECONDS = 0


class ProductionConfig(Config):
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


config_by_name = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}
