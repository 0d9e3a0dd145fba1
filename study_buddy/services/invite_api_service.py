"""Business logic handlers for single-use restaurant invite codes."""

import logging

from study_buddy.repositories import invites_repo
from study_buddy.repositories.query_utils import sanitize_doc_id


def create_invite(app_ctx, request):
    decoded_token, auth_error = app_ctx.require_user(request)
    if auth_error:
        return auth_error
    manager_id = decoded_token['uid']
    payload = app_ctx.get_json_payload(request)
    restaurant_id = sanitize_doc_id(payload.get('restaurantId'))
    if not restaurant_id:
        return app_ctx.error('Restaurant ID is required.', 400)

    try:
        invite_ref = invites_repo.add_invite(app_ctx.db, restaurant_id, {
            'createdAt': app_ctx.time.time(),
            'createdBy': manager_id,
            'used': False,
        })
        app_ctx.log_event(logging.INFO, 'invite_created', restaurant_id=restaurant_id, created_by=manager_id)
        return app_ctx.jsonify({'inviteCode': invite_ref.id}), 201
    except Exception as e:
        app_ctx.logger.error(f"Error creating invite for restaurant {restaurant_id}: {e}")
        return app_ctx.error('Server error creating invite.', 500)


def validate_invite(app_ctx, request):
    payload = app_ctx.get_json_payload(request)
    raw_code = str(payload.get('inviteCode', '') or '').strip()
    if not raw_code:
        return app_ctx.error('Invite code missing.', 400)
    invite_code = sanitize_doc_id(raw_code)
    if not invite_code:
        return app_ctx.error('Invite code not found.', 404)

    try:
        restaurant_id, snapshot = invites_repo.find_invite(app_ctx.db, invite_code)
        if snapshot is None:
            return app_ctx.error('Invite code not found.', 404)
        if (snapshot.to_dict() or {}).get('used'):
            return app_ctx.error('Invite already used.', 400)
        return app_ctx.jsonify({'restaurantId': restaurant_id})
    except Exception as e:
        app_ctx.logger.error(f"Error validating invite: {e}")
        return app_ctx.error('Server error validating invite.', 500)


def mark_invite_used(app_ctx, request):
    payload = app_ctx.get_json_payload(request)
    raw_code = str(payload.get('inviteCode', '') or '').strip()
    if not raw_code:
        return app_ctx.error('Invite code is missing.', 400)
    invite_code = sanitize_doc_id(raw_code)
    if not invite_code:
        return app_ctx.error('Invite not found.', 404)

    try:
        restaurant_id, snapshot = invites_repo.find_invite(app_ctx.db, invite_code)
        if snapshot is None:
            return app_ctx.error('Invite not found.', 404)
        if not (snapshot.to_dict() or {}).get('used'):
            snapshot.reference.update({'used': True, 'usedAt': app_ctx.time.time()})
            app_ctx.log_event(logging.INFO, 'invite_marked_used', restaurant_id=restaurant_id)
        return 'Invite marked as used.', 200, {'Content-Type': 'text/plain; charset=utf-8'}
    except Exception as e:
        app_ctx.logger.error(f"Error marking invite as used: {e}")
        return app_ctx.error('Server error marking invite as used.', 500)
