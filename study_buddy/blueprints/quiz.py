from flask import Blueprint, request

from study_buddy import runtime
from study_buddy.services import quiz_api_service

quiz_bp = Blueprint('quiz', __name__)


@quiz_bp.route('/generate-quiz', methods=['POST'])
def generate_quiz():
    return quiz_api_service.generate_quiz(runtime, request)


@quiz_bp.route('/save-quiz', methods=['POST'])
def save_quiz():
    return quiz_api_service.save_quiz(runtime, request)


@quiz_bp.route('/update-quiz-name', methods=['POST'])
def update_quiz_name():
    return quiz_api_service.update_quiz_name(runtime, request)


@quiz_bp.route('/share-quiz', methods=['POST'])
def share_quiz():
    return quiz_api_service.share_quiz(runtime, request)


@quiz_bp.route('/shared-quiz/<quiz_id>', methods=['GET'])
def get_shared_quiz(quiz_id):
    return quiz_api_service.get_shared_quiz(runtime, request, quiz_id)


@quiz_bp.route('/save-shared-quiz-result', methods=['POST'])
def save_shared_quiz_result():
    return quiz_api_service.save_shared_quiz_result(runtime, request)


@quiz_bp.route('/quizzes/<quiz_id>/results', methods=['GET'])
def get_quiz_results(quiz_id):
    return quiz_api_service.get_quiz_results(runtime, request, quiz_id)
