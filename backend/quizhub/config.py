"""Application settings and validation."""

import os

DEFAULT_SESSION_SECRET = "change_me_for_prod_session_signing_key"


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Settings:
    ENV: str
    LOG_LEVEL: str
    SESSION_SECRET: str
    SESSION_TTL_HOURS: int
    SESSION_COOKIE_NAME: str
    SESSION_COOKIE_SECURE: bool
    PASSWORD_SCHEME: str
    SEED_DEMO_DATA: bool
    ALLOW_DEV_CORS: bool
    ALLOW_INSECURE_SECRET: bool

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.SESSION_SECRET = os.getenv("SESSION_SECRET", DEFAULT_SESSION_SECRET)
        self.SESSION_TTL_HOURS = int(os.getenv("SESSION_TTL_HOURS", "24"))
        self.SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "quizhub_session")
        # secure cookies are only sent over https, which local dev/test clients don't use
        default_secure = "false" if self.ENV in ("dev", "test") else "true"
        self.SESSION_COOKIE_SECURE = _flag("SESSION_COOKIE_SECURE", default_secure)
        self.PASSWORD_SCHEME = os.getenv("PASSWORD_SCHEME", "pbkdf2_sha256")
        self.SEED_DEMO_DATA = _flag("SEED_DEMO_DATA", "true")
        self.ALLOW_DEV_CORS = _flag("ALLOW_DEV_CORS", "true")
        self.ALLOW_INSECURE_SECRET = _flag("ALLOW_INSECURE_SECRET", "false")
        self._validate()

    def _validate(self):
        if self.SESSION_TTL_HOURS <= 0:
            raise RuntimeError("SESSION_TTL_HOURS must be a positive number of hours")
        if (
            self.ENV not in ("dev", "test")
            and not self.ALLOW_INSECURE_SECRET
            and self.SESSION_SECRET == DEFAULT_SESSION_SECRET
        ):
            raise RuntimeError("SESSION_SECRET must be set to a non-default value in non-dev environments")


settings = Settings()
