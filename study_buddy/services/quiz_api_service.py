"""Business logic handlers for quiz generation, saving and sharing."""

import logging

from study_buddy.repositories import quizzes_repo
from study_buddy.repositories.query_utils import sanitize_doc_id, snapshot_to_dict
from study_buddy.services import ai_service, prompt_registry

DEFAULT_ATTEMPT_LIMIT = 10
MIN_ATTEMPT_LIMIT = 1
MAX_ATTEMPT_LIMIT = 10
MAX_QUIZ_NAME_LEN = 200
MAX_RESULTS_LISTED = 500
ATTEMPT_LIMIT_MESSAGE = 'You have reached the maximum number of attempts.'


class AttemptLimitReached(Exception):
    pass


def clamp_attempt_limit(raw_value, default=DEFAULT_ATTEMPT_LIMIT):
    try:
        value = int(raw_value)
    except (TypeError, ValueError):
        return default
    return min(max(value, MIN_ATTEMPT_LIMIT), MAX_ATTEMPT_LIMIT)


def generate_quiz(app_ctx, request):
    config = app_ctx.config
    allowed, retry_after = app_ctx.check_rate_limit(
        key=f"generate_quiz:{app_ctx.client_key(request)}",
        limit=config.quiz_rate_limit_max_requests,
        window_seconds=config.quiz_rate_limit_window_seconds,
    )
    if not allowed:
        return app_ctx.build_rate_limited_response(
            'Too many quiz requests right now. Please wait and try again.',
            retry_after,
        )

    if app_ctx.client is None:
        return app_ctx.error('Server is not configured with a Gemini API key.', 500)

    payload = app_ctx.get_json_payload(request)
    text = str(payload.get('text', '') or '').strip()
    if not text:
        return app_ctx.error('No text provided.', 400)
    refinement_text = str(payload.get('refinementText', '') or '').strip()[:ai_service.MAX_REFINEMENT_LEN]

    prompt = prompt_registry.build_quiz_prompt(text[:ai_service.MAX_SOURCE_TEXT_LEN], refinement_text)
    try:
        raw_reply = ai_service.generate_text(
            app_ctx.client,
            config.gemini_model,
            prompt,
            temperature=config.quiz_temperature,
        )
    except Exception as e:
        app_ctx.logger.error(f"Error in /generate-quiz route: {e}")
        return app_ctx.error('Error generating quiz.', 500)

    questions = ai_service.normalize_quiz_payload(ai_service.extract_json_payload(raw_reply))
    if not questions:
        app_ctx.logger.warning(f"Quiz reply could not be parsed: {raw_reply[:300]!r}")
        return app_ctx.error('Failed to parse AI response.', 500)

    app_ctx.log_event(
        logging.INFO,
        'quiz_generated',
        question_count=len(questions),
        source_chars=len(text),
        truncated=len(text) > ai_service.MAX_SOURCE_TEXT_LEN,
        refined=bool(refinement_text),
    )
    return app_ctx.jsonify({'questions': questions})


def save_quiz(app_ctx, request):
    decoded_token, auth_error = app_ctx.require_user(request)
    if auth_error:
        return auth_error
    uid = decoded_token['uid']
    payload = app_ctx.get_json_payload(request)

    quiz_data = payload.get('quizData')
    score = payload.get('score')
    document_name = str(payload.get('documentName', '') or '').strip()[:MAX_QUIZ_NAME_LEN]
    document_id = str(payload.get('documentId', '') or '').strip()
    answers = payload.get('answers')
    if not quiz_data or score is None or not document_name or not document_id or answers is None:
        return app_ctx.error('Missing required quiz data for saving.', 400)
    if not isinstance(quiz_data, list):
        return app_ctx.error('quizData must be a list of questions.', 400)

    try:
        doc_ref = quizzes_repo.create_quiz_doc_ref(app_ctx.db)
        doc_ref.set({
            'ownerId': uid,
            'documentId': document_id,
            'documentName': document_name,
            'score': score,
            'totalQuestions': len(quiz_data),
            'quizData': quiz_data,
            'answers': answers,
            'attemptLimit': DEFAULT_ATTEMPT_LIMIT,
            'completedAt': app_ctx.time.time(),
        })
        return app_ctx.jsonify({'message': 'Quiz saved successfully.', 'quizId': doc_ref.id}), 201
    except Exception as e:
        app_ctx.logger.error(f"Error saving quiz for user {uid}: {e}")
        return app_ctx.error('Server error while saving quiz.', 500)


def _load_owned_quiz(app_ctx, quiz_id, uid):
    """Return (snapshot, None) for a quiz the caller owns, else (None, error)."""
    snapshot = quizzes_repo.get_quiz_doc(app_ctx.db, quiz_id)
    if not snapshot.exists:
        return None, app_ctx.error('Quiz not found.', 404)
    if (snapshot.to_dict() or {}).get('ownerId') != uid:
        return None, app_ctx.error('You are not authorized to edit this quiz.', 403)
    return snapshot, None


def update_quiz_name(app_ctx, request):
    decoded_token, auth_error = app_ctx.require_user(request)
    if auth_error:
        return auth_error
    uid = decoded_token['uid']
    payload = app_ctx.get_json_payload(request)
    quiz_id = sanitize_doc_id(payload.get('quizId'))
    new_name = str(payload.get('newName', '') or '').strip()[:MAX_QUIZ_NAME_LEN]
    if not quiz_id or not new_name:
        return app_ctx.error('Missing quiz ID or new name.', 400)

    try:
        snapshot, owner_error = _load_owned_quiz(app_ctx, quiz_id, uid)
        if owner_error:
            return owner_error
        snapshot.reference.update({'documentName': new_name})
        return app_ctx.jsonify({'message': 'Quiz name updated successfully.'})
    except Exception as e:
        app_ctx.logger.error(f"Error updating quiz name {quiz_id}: {e}")
        return app_ctx.error('Server error while updating quiz name.', 500)


def share_quiz(app_ctx, request):
    decoded_token, auth_error = app_ctx.require_user(request)
    if auth_error:
        return auth_error
    uid = decoded_token['uid']
    payload = app_ctx.get_json_payload(request)
    quiz_id = sanitize_doc_id(payload.get('quizId'))
    if not quiz_id:
        return app_ctx.error('Missing quiz ID.', 400)
    attempt_limit = clamp_attempt_limit(payload.get('attemptLimit'))

    try:
        snapshot, owner_error = _load_owned_quiz(app_ctx, quiz_id, uid)
        if owner_error:
            return owner_error
        snapshot.reference.update({'attemptLimit': attempt_limit, 'sharedAt': app_ctx.time.time()})
        return app_ctx.jsonify({'quizId': quiz_id, 'attemptLimit': attempt_limit})
    except Exception as e:
        app_ctx.logger.error(f"Error sharing quiz {quiz_id}: {e}")
        return app_ctx.error('Server error while sharing quiz.', 500)


def get_shared_quiz(app_ctx, request, quiz_id):
    quiz_id = sanitize_doc_id(quiz_id)
    if not quiz_id:
        return app_ctx.error('Quiz not found.', 404)
    try:
        snapshot = quizzes_repo.get_quiz_doc(app_ctx.db, quiz_id)
        if not snapshot.exists:
            return app_ctx.error('Quiz not found. The link may be invalid or the quiz may have been deleted.', 404)
        quiz = snapshot.to_dict() or {}
        return app_ctx.jsonify({
            'quizId': quiz_id,
            'documentName': quiz.get('documentName', ''),
            'quizData': quiz.get('quizData', []),
            'attemptLimit': clamp_attempt_limit(quiz.get('attemptLimit')),
        })
    except Exception as e:
        app_ctx.logger.error(f"Error fetching shared quiz {quiz_id}: {e}")
        return app_ctx.error('An error occurred while loading the quiz.', 500)


def save_shared_quiz_result(app_ctx, request):
    decoded_token, auth_error = app_ctx.require_user(request)
    if auth_error:
        return auth_error
    uid = decoded_token['uid']
    email = decoded_token.get('email', '')
    payload = app_ctx.get_json_payload(request)

    quiz_id = sanitize_doc_id(payload.get('quizId'))
    score = payload.get('score')
    quiz_data = payload.get('quizData')
    answers = payload.get('answers')
    duration = payload.get('duration')
    if not quiz_id or score is None or not quiz_data or answers is None or duration is None:
        return app_ctx.error('Missing required data.', 400)
    if not isinstance(quiz_data, list):
        return app_ctx.error('quizData must be a list of questions.', 400)

    db = app_ctx.db
    try:
        original_snapshot = quizzes_repo.get_quiz_doc(db, quiz_id)
        if not original_snapshot.exists:
            return app_ctx.error('Original quiz not found.', 404)
        original = original_snapshot.to_dict() or {}
        limit = clamp_attempt_limit(original.get('attemptLimit'))
        copy_query = quizzes_repo.taker_copy_query(db, uid, quiz_id)
        attempts_query = quizzes_repo.results_by_taker_query(db, quiz_id, uid)
        results_collection = quizzes_repo.results_collection(db, quiz_id)
        now_ts = app_ctx.time.time()
        transaction = db.transaction()

        @app_ctx.firestore.transactional
        def _txn(txn):
            attempts = len(list(txn.get(attempts_query)))
            copies = list(txn.get(copy_query))
            if attempts >= limit:
                raise AttemptLimitReached(ATTEMPT_LIMIT_MESSAGE)
            taker_copy = copies[0] if copies else None
            result_ref = results_collection.document()
            txn.set(result_ref, {
                'takerId': uid,
                'takerEmail': email,
                'score': score,
                'totalQuestions': len(quiz_data),
                'answers': answers,
                'duration': duration,
                'completedAt': now_ts,
            })
            if taker_copy is None:
                txn.set(quizzes_repo.create_quiz_doc_ref(db), {
                    'ownerId': uid,
                    'documentId': original.get('documentId', ''),
                    'documentName': original.get('documentName', ''),
                    'score': score,
                    'totalQuestions': len(quiz_data),
                    'quizData': quiz_data,
                    'answers': answers,
                    'duration': duration,
                    'originalQuizId': quiz_id,
                    'completedAt': now_ts,
                })
            else:
                txn.update(taker_copy.reference, {
                    'score': score,
                    'answers': answers,
                    'duration': duration,
                    'completedAt': now_ts,
                })
            return result_ref.id

        result_id = _txn(transaction)
        return app_ctx.jsonify({'message': 'Quiz result saved successfully.', 'resultId': result_id}), 201
    except AttemptLimitReached as e:
        return app_ctx.error(str(e), 403)
    except Exception as e:
        app_ctx.logger.error(f"Error saving shared quiz result for {quiz_id}: {e}")
        return app_ctx.error('Could not save your quiz result due to a server error.', 500)


def get_quiz_results(app_ctx, request, quiz_id):
    decoded_token, auth_error = app_ctx.require_user(request)
    if auth_error:
        return auth_error
    uid = decoded_token['uid']
    quiz_id = sanitize_doc_id(quiz_id)
    if not quiz_id:
        return app_ctx.error('Quiz not found.', 404)
    try:
        snapshot = quizzes_repo.get_quiz_doc(app_ctx.db, quiz_id)
        if not snapshot.exists:
            return app_ctx.error('Quiz not found.', 404)
        quiz = snapshot.to_dict() or {}
        if quiz.get('ownerId') != uid:
            return app_ctx.error('You are not authorized to view these results.', 403)
        results = [snapshot_to_dict(doc) for doc in quizzes_repo.list_results(app_ctx.db, quiz_id, MAX_RESULTS_LISTED)]
        results.sort(key=lambda result: result.get('completedAt') or 0, reverse=True)
        return app_ctx.jsonify({
            'quizId': quiz_id,
            'documentName': quiz.get('documentName', ''),
            'totalQuestions': quiz.get('totalQuestions', 0),
            'results': results,
        })
    except Exception as e:
        app_ctx.logger.error(f"Error fetching results for quiz {quiz_id}: {e}")
        return app_ctx.error('Could not load quiz results.', 500)
