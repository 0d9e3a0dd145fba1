import json
import os

import firebase_admin
import sentry_sdk
from firebase_admin import credentials, firestore, storage
from google import genai
from sentry_sdk.integrations.flask import FlaskIntegration

from study_buddy import runtime
from study_buddy.services.ocr_service import TextExtractor


def is_cloud_functions_runtime():
    return bool(os.getenv('K_SERVICE') or os.getenv('FUNCTION_TARGET') or os.getenv('FUNCTIONS_EMULATOR') == 'true')


def load_firebase_credential(config):
    if os.path.exists(config.firebase_credentials_path):
        return credentials.Certificate(config.firebase_credentials_path)
    if config.firebase_credentials:
        return credentials.Certificate(json.loads(config.firebase_credentials))
    if is_cloud_functions_runtime():
        return credentials.ApplicationDefault()
    raise ValueError(
        "FIREBASE_CREDENTIALS is not set and "
        f"{config.firebase_credentials_path} was not found."
    )


def init_firebase(config, logger):
    """Return (db, bucket, error_message); never raises."""
    if os.getenv('FUNCTIONS_EMULATOR') == 'true':
        logger.info("Local emulator detected; pointing Storage at the emulator.")
        os.environ.setdefault('FIREBASE_STORAGE_EMULATOR_HOST', '127.0.0.1:9199')
    try:
        if not firebase_admin._apps:
            options = {}
            if config.firebase_storage_bucket:
                options['storageBucket'] = config.firebase_storage_bucket
            firebase_admin.initialize_app(load_firebase_credential(config), options or None)
        db = firestore.client()
        bucket = storage.bucket() if config.firebase_storage_bucket else None
        return db, bucket, ''
    except Exception as exc:
        logger.warning(f"Firebase initialization skipped: {exc}")
        return None, None, str(exc)


def init_genai(config, logger):
    if not config.gemini_api_key:
        logger.warning("GEMINI_API_KEY not set; AI quiz and flashcard endpoints will not work.")
        return None
    try:
        return genai.Client(api_key=config.gemini_api_key)
    except Exception as exc:
        logger.warning(f"Gemini client disabled: {exc}")
        return None


def init_sentry(config):
    if not config.sentry_dsn:
        return False
    sentry_sdk.init(
        dsn=config.sentry_dsn,
        integrations=[FlaskIntegration()],
        traces_sample_rate=config.sentry_traces_sample_rate,
        send_default_pii=False,
        environment=config.sentry_environment,
        release=config.sentry_release,
    )
    return True


def init_extensions(app, config) -> None:
    """Wire vendor clients into the shared runtime context."""
    logger = runtime.logger
    runtime.config = config
    runtime.db, runtime.bucket, firebase_error = init_firebase(config, logger)
    runtime.client = init_genai(config, logger)
    runtime.text_extractor = TextExtractor(lang=config.ocr_lang, tesseract_cmd=config.tesseract_cmd or None)
    sentry_enabled = init_sentry(config)
    app.extensions.setdefault('study_buddy', {})
    app.extensions['study_buddy'].update({
        'firebase_ready': runtime.db is not None,
        'firebase_error': firebase_error,
        'storage_ready': runtime.bucket is not None,
        'gemini_ready': runtime.client is not None,
        'sentry_enabled': sentry_enabled,
    })
