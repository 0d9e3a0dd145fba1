from flask import Blueprint, request

from study_buddy import runtime
from study_buddy.services import invite_api_service

invites_bp = Blueprint('invites', __name__)


@invites_bp.route('/create-invite', methods=['POST'])
def create_invite():
    return invite_api_service.create_invite(runtime, request)


@invites_bp.route('/validate-invite', methods=['POST'])
def validate_invite():
    return invite_api_service.validate_invite(runtime, request)


@invites_bp.route('/mark-invite-used', methods=['POST'])
def mark_invite_used():
    return invite_api_service.mark_invite_used(runtime, request)
