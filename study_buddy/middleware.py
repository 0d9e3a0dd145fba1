"""Request hooks: CORS, request ids, Sentry tags and JSON error pages."""

import sentry_sdk
from flask import g, jsonify, request
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from study_buddy import runtime

CORS_ALLOW_HEADERS = 'Authorization, Content-Type, X-Request-ID'
CORS_ALLOW_METHODS = 'GET, POST, PUT, PATCH, DELETE, OPTIONS'


def origin_allowed(origin, allowed_origins):
    if not origin:
        return False
    return '*' in allowed_origins or origin.lower() in allowed_origins


def apply_cors_headers(response):
    origin = str(request.headers.get('Origin', '') or '').strip()
    if not origin_allowed(origin, runtime.config.cors_allowed_origins):
        return response
    response.headers['Access-Control-Allow-Origin'] = origin
    response.headers['Vary'] = 'Origin'
    response.headers['Access-Control-Allow-Headers'] = CORS_ALLOW_HEADERS
    response.headers['Access-Control-Allow-Methods'] = CORS_ALLOW_METHODS
    return response


def register_request_hooks(app, sentry_enabled=False):
    @app.before_request
    def handle_options_preflight():
        if request.method == 'OPTIONS':
            return apply_cors_headers(app.make_default_options_response())
        return None

    @app.before_request
    def attach_request_context():
        request_id = str(request.headers.get('X-Request-ID', '') or '').strip()[:120] or runtime.new_request_id()
        g.request_id = request_id
        if not sentry_enabled:
            return
        sentry_sdk.set_tag('request.id', request_id)
        sentry_sdk.set_tag('route.path', request.path)
        sentry_sdk.set_tag('route.method', request.method)
        sentry_sdk.set_tag('route.endpoint', request.endpoint or '')
        sentry_sdk.set_tag('route.auth_header_present', 'true' if request.headers.get('Authorization') else 'false')

    @app.after_request
    def attach_response_context(response):
        request_id = str(getattr(g, 'request_id', '') or '').strip()
        if request_id:
            response.headers['X-Request-ID'] = request_id
        if sentry_enabled:
            sentry_sdk.set_tag('route.status_code', str(response.status_code))
        return apply_cors_headers(response)

    @app.errorhandler(RequestEntityTooLarge)
    def handle_request_entity_too_large(_error):
        limit_mb = runtime.config.max_upload_mb
        return jsonify({'error': f'Upload too large. Maximum upload size is {limit_mb}MB.'}), 413

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return jsonify({'error': error.description or error.name}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_exception(error):
        runtime.logger.exception(f"Unhandled error on {request.method} {request.path}: {error}")
        return jsonify({'error': 'Internal server error'}), 500
