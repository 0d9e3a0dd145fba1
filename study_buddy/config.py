import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

DEV_ENV_NAMES = {'development', 'dev', 'local', 'test'}


def safe_int_env(name, default=0, minimum=1, maximum=100000):
    raw = str(os.getenv(name, str(default)) or '').strip()
    try:
        value = int(raw)
    except ValueError:
        value = int(default)
    return min(max(value, minimum), maximum)


def safe_float_env(name, default=0.0, minimum=0.0, maximum=1.0):
    raw = str(os.getenv(name, str(default)) or '').strip()
    try:
        value = float(raw)
    except ValueError:
        return default
    return min(max(value, minimum), maximum)


def env_flag(name, default='0'):
    return str(os.getenv(name, default)).strip().lower() in {'1', 'true', 'yes', 'on'}


def _env_str(name, default=''):
    return lambda: (os.getenv(name, default) or default).strip()


def parse_cors_allowed_origins():
    raw = (os.getenv('CORS_ALLOWED_ORIGINS', '*') or '*').strip()
    if raw == '*':
        return frozenset({'*'})
    return frozenset(part.strip().lower() for part in raw.split(',') if part.strip())


def resolve_runtime_env():
    return (
        os.getenv('SENTRY_ENVIRONMENT')
        or os.getenv('FLASK_ENV')
        or os.getenv('ENV')
        or ('production' if (os.getenv('K_SERVICE') or os.getenv('FUNCTION_TARGET')) else 'development')
    ).strip().lower()


@dataclass(frozen=True)
class AppConfig:
    """Central config object, read from the environment at load time."""

    flask_secret_key: str = field(default_factory=_env_str('FLASK_SECRET_KEY'))
    log_level: str = field(default_factory=lambda: _env_str('LOG_LEVEL', 'INFO')().upper())
    runtime_env: str = field(default_factory=resolve_runtime_env)
    port: int = field(default_factory=lambda: safe_int_env('PORT', 3001, minimum=1, maximum=65535))

    gemini_api_key: str = field(default_factory=_env_str('GEMINI_API_KEY'))
    gemini_model: str = field(default_factory=_env_str('GEMINI_MODEL', 'gemini-2.5-flash'))
    quiz_temperature: float = field(default_factory=lambda: safe_float_env('QUIZ_TEMPERATURE', 0.8, maximum=2.0))

    firebase_credentials: str = field(default_factory=_env_str('FIREBASE_CREDENTIALS'))
    firebase_credentials_path: str = field(default_factory=_env_str('FIREBASE_CREDENTIALS_PATH', 'firebase-credentials.json'))
    firebase_storage_bucket: str = field(default_factory=_env_str('FIREBASE_STORAGE_BUCKET'))

    cors_allowed_origins: frozenset = field(default_factory=parse_cors_allowed_origins)

    quiz_rate_limit_window_seconds: int = field(default_factory=lambda: safe_int_env('QUIZ_RATE_LIMIT_WINDOW_SECONDS', 600, minimum=10, maximum=86400))
    quiz_rate_limit_max_requests: int = field(default_factory=lambda: safe_int_env('QUIZ_RATE_LIMIT_MAX_REQUESTS', 20, minimum=1, maximum=1000))
    extract_rate_limit_window_seconds: int = field(default_factory=lambda: safe_int_env('EXTRACT_RATE_LIMIT_WINDOW_SECONDS', 600, minimum=10, maximum=86400))
    extract_rate_limit_max_requests: int = field(default_factory=lambda: safe_int_env('EXTRACT_RATE_LIMIT_MAX_REQUESTS', 30, minimum=1, maximum=1000))
    rate_limit_firestore_enabled: bool = field(default_factory=lambda: env_flag('RATE_LIMIT_FIRESTORE_ENABLED', '1'))

    max_upload_mb: int = field(default_factory=lambda: safe_int_env('MAX_UPLOAD_MB', 25, minimum=1, maximum=200))
    tesseract_cmd: str = field(default_factory=_env_str('TESSERACT_CMD'))
    ocr_lang: str = field(default_factory=_env_str('OCR_LANG', 'eng'))

    sentry_dsn: str = field(default_factory=_env_str('SENTRY_DSN_BACKEND'))
    sentry_environment: str = field(default_factory=lambda: _env_str('SENTRY_ENVIRONMENT', os.getenv('FLASK_ENV', 'production') or 'production')())
    sentry_release: str = field(default_factory=_env_str('SENTRY_RELEASE', 'study-buddy'))
    sentry_traces_sample_rate: float = field(default_factory=lambda: safe_float_env('SENTRY_TRACES_SAMPLE_RATE', 0.0))

    @property
    def is_dev_like(self):
        return self.runtime_env in DEV_ENV_NAMES

    @property
    def max_upload_bytes(self):
        return self.max_upload_mb * 1024 * 1024


def load_config() -> AppConfig:
    load_dotenv()
    config = AppConfig()
    if not config.is_dev_like and not config.flask_secret_key:
        raise RuntimeError('FLASK_SECRET_KEY must be set in non-development environments.')
    return config
