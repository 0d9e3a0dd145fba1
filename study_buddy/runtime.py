"""Process-wide handles shared by the service layer.

Services receive this module as ``app_ctx`` so tests can monkeypatch a single
place (``db``, ``client``, ``verify_firebase_token``, ``check_rate_limit``)
instead of reaching into vendor SDKs.
"""

import logging
import time
import uuid

import requests
from firebase_admin import auth, firestore
from flask import jsonify

from study_buddy.config import AppConfig
from study_buddy.logging_config import log_event as _log_event
from study_buddy.services import auth_service, rate_limit_service
from study_buddy.services.ocr_service import TextExtractor

logger = logging.getLogger('study_buddy')

config = AppConfig()
db = None
bucket = None
client = None
text_extractor = TextExtractor()
http_get = requests.get

RATE_LIMITER = rate_limit_service.SlidingWindowLimiter()
RATE_LIMIT_COUNTER_COLLECTION = 'rate_limit_counters'


def log_event(level, event, **fields):
    _log_event(logger, level, event, **fields)


def new_request_id():
    return uuid.uuid4().hex


def verify_firebase_token(request):
    return auth_service.verify_firebase_token(request, auth, logger)


def require_user(request):
    """Return (decoded_token, None) or (None, error_response)."""
    if not auth_service.extract_bearer_token(request):
        return None, (jsonify({'error': 'Unauthorized: No token provided.'}), 401)
    decoded_token = verify_firebase_token(request)
    if not decoded_token:
        return None, (jsonify({'error': 'Could not verify token'}), 403)
    return decoded_token, None


def check_rate_limit(key, limit, window_seconds):
    return rate_limit_service.check_rate_limit(
        key,
        limit,
        window_seconds,
        now_ts=time.time(),
        fallback=RATE_LIMITER,
        db=db if config.rate_limit_firestore_enabled else None,
        firestore_module=firestore,
        counter_collection=RATE_LIMIT_COUNTER_COLLECTION,
        logger=logger,
    )


def build_rate_limited_response(message, retry_after):
    response = jsonify({
        'error': message,
        'retry_after_seconds': int(max(1, retry_after)),
    })
    response.status_code = 429
    response.headers['Retry-After'] = str(int(max(1, retry_after)))
    return response


def client_key(request):
    return rate_limit_service.normalize_key_part(rate_limit_service.client_ip(request), fallback='anon_ip')


def error(message, status):
    return jsonify({'error': message}), status


def get_json_payload(request):
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}
