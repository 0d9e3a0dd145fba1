from flask import Blueprint, request

from study_buddy import runtime
from study_buddy.services import highlight_api_service

highlights_bp = Blueprint('highlights', __name__)


@highlights_bp.route('/highlights', methods=['GET'])
def list_highlights():
    return highlight_api_service.list_highlights(runtime, request)


@highlights_bp.route('/highlights', methods=['POST'])
def create_highlight():
    return highlight_api_service.create_highlight(runtime, request)


@highlights_bp.route('/highlights/<highlight_id>', methods=['PATCH'])
def update_highlight(highlight_id):
    return highlight_api_service.update_highlight(runtime, request, highlight_id)


@highlights_bp.route('/highlights/<highlight_id>', methods=['DELETE'])
def delete_highlight(highlight_id):
    return highlight_api_service.delete_highlight(runtime, request, highlight_id)
