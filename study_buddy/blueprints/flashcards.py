from flask import Blueprint, request

from study_buddy import runtime
from study_buddy.services import flashcard_api_service

flashcards_bp = Blueprint('flashcards', __name__)


@flashcards_bp.route('/generate-flashcards', methods=['POST'])
def generate_flashcards():
    return flashcard_api_service.generate_flashcards(runtime, request)
