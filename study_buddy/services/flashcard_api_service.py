"""Business logic handler for AI flashcard generation."""

import logging

from study_buddy.repositories import documents_repo
from study_buddy.repositories.query_utils import sanitize_doc_id
from study_buddy.services import ai_service, prompt_registry

DEFAULT_CARD_COUNT = 10
MIN_CARD_COUNT = 5
MAX_CARD_COUNT = 30


def parse_card_count(raw_value):
    try:
        value = int(raw_value)
    except (TypeError, ValueError):
        return DEFAULT_CARD_COUNT
    return min(max(value, MIN_CARD_COUNT), MAX_CARD_COUNT)


def generate_flashcards(app_ctx, request):
    decoded_token, auth_error = app_ctx.require_user(request)
    if auth_error:
        return auth_error
    uid = decoded_token['uid']

    if app_ctx.client is None:
        return app_ctx.error('Server is not configured with a Gemini API key.', 500)

    payload = app_ctx.get_json_payload(request)
    text = str(payload.get('text', '') or '').strip()
    if not text:
        return app_ctx.error('No text provided.', 400)
    refinement_text = str(payload.get('refinementText', '') or '').strip()[:ai_service.MAX_REFINEMENT_LEN]
    card_count = parse_card_count(payload.get('count', DEFAULT_CARD_COUNT))

    raw_document_id = payload.get('documentId')
    document_id = sanitize_doc_id(raw_document_id)
    if raw_document_id and not document_id:
        return app_ctx.error('Document not found.', 404)

    try:
        if document_id and not documents_repo.get_document_doc(app_ctx.db, uid, document_id).exists:
            return app_ctx.error('Document not found.', 404)

        prompt = prompt_registry.build_flashcards_prompt(
            text[:ai_service.MAX_SOURCE_TEXT_LEN],
            card_count,
            refinement_text,
        )
        raw_reply = ai_service.generate_text(app_ctx.client, app_ctx.config.gemini_model, prompt)
        flashcards = ai_service.sanitize_flashcards(ai_service.extract_json_payload(raw_reply), card_count)
        if not flashcards:
            return app_ctx.error('Failed to parse AI response.', 500)

        if document_id:
            documents_repo.update_document(app_ctx.db, uid, document_id, {
                'flashcards': flashcards,
                'flashcardsUpdatedAt': app_ctx.time.time(),
            })

        app_ctx.log_event(logging.INFO, 'flashcards_generated', uid=uid, card_count=len(flashcards), saved=bool(document_id))
        return app_ctx.jsonify({'flashcards': flashcards, 'documentId': document_id or None})
    except Exception as e:
        app_ctx.logger.error(f"Error generating flashcards for user {uid}: {e}")
        return app_ctx.error('Error generating flashcards.', 500)
