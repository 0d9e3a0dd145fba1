"""Authentication utility helpers."""


def extract_bearer_token(request):
    auth_header = request.headers.get('Authorization', '')
    if not auth_header.startswith('Bearer '):
        return ''
    return auth_header.split('Bearer ', 1)[1].strip()


def verify_firebase_token(request, auth_module, logger):
    """Return decoded Firebase token dict, or None when invalid/missing."""
    token = extract_bearer_token(request)
    if not token:
        return None
    try:
        return auth_module.verify_id_token(token)
    except Exception as exc:
        if logger is not None:
            logger.info(f"Token verification failed: {exc}")
        return None


def set_manager_role(uid, *, auth_module, role='administrator'):
    safe_uid = str(uid or '').strip()
    if not safe_uid:
        raise ValueError('The function must be called with a "uid" argument.')
    auth_module.set_custom_user_claims(safe_uid, {'role': role})
    return f"Success! User {safe_uid} has now been made an {role}."
