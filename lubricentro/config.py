from dotenv import load_dotenv
load_dotenv()  # Load environment variables from .env file

import os


class Config:
    """Base configuration class."""
    APP_NAME = os.getenv("APP_NAME", "Lubricentro API")

    SECRET_KEY = os.getenv("SECRET_KEY", "your_default_secret_key")
    DEBUG = os.getenv("FLASK_DEBUG", "False") == "True"
    TESTING = False
    MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017/lubricentro")
    DB_NAME = os.getenv("DB_NAME", "lubricentro")

    # ========================================
    # AUTH
    # ========================================
    JWT_EXPIRES_HOURS = int(os.getenv("JWT_EXPIRES_HOURS", 24))

    # ========================================
    # CORS / RATE LIMITING
    # ========================================
    ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()]
    # read by Flask-Limiter in limiter.init_app
    RATELIMIT_STORAGE_URI = os.getenv("RATE_LIMIT_STORAGE_URI", "memory://")
    RATELIMIT_ENABLED = True

    # ========================================
    # SUBSCRIPTION JOBS
    # ========================================
    PAYMENT_REMINDER_DAYS = int(os.getenv("PAYMENT_REMINDER_DAYS", 7))


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    SECRET_KEY = "testing-secret-key-with-enough-length"
    MONGO_URI = os.getenv("TEST_MONGO_URI", "mongodb://localhost:27017/lubricentro_test")
    DB_NAME = "lubricentro_test"
    RATELIMIT_ENABLED = False


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    MONGO_URI = os.getenv("PROD_MONGO_URI", os.getenv("MONGO_URI", "mongodb://localhost:27017/lubricentro"))


CONFIG_BY_NAME = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def load_config(app, config_name=None):
    load_dotenv()
    config_name = config_name or os.getenv("APP_ENV", "development")
    app.config.from_object(CONFIG_BY_NAME.get(config_name, DevelopmentConfig))
