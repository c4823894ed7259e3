import os


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///repairflow.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    APP_NAME = os.getenv("APP_NAME", "Repair Workshop")

    GST_RATE = float(os.getenv("GST_RATE", 18))  # percent
    GST_INCLUDED = _flag("GST_INCLUDED", "true")
    MAX_ITEM_PHOTOS = int(os.getenv("MAX_ITEM_PHOTOS", 4))
    INVOICE_PREFIX = os.getenv("INVOICE_PREFIX", "INV")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.getenv("LOG_FORMAT", "plain")  # plain/json


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOG_LEVEL = "DEBUG"
    LOG_FORMAT = "plain"
