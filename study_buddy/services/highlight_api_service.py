"""Business logic handlers for per-document highlights and notes."""

from study_buddy.repositories import documents_repo, highlights_repo
from study_buddy.repositories.query_utils import sanitize_doc_id, snapshot_to_dict

MAX_HIGHLIGHT_TEXT_LEN = 5000
MAX_NOTE_LEN = 5000
MAX_COLOR_LEN = 32
MAX_HIGHLIGHTS_PER_DOCUMENT = 2000
MAX_PAGE = 100000
NO_PAGE_GROUP = 'N/A'


def sanitize_page(value):
    """Return a 1-based page number, or None when absent/invalid."""
    if value is None or isinstance(value, bool):
        return None
    try:
        page = int(value)
    except (TypeError, ValueError):
        return None
    if page < 1 or page > MAX_PAGE:
        return None
    return page


def highlight_sort_key(highlight):
    page = sanitize_page(highlight.get('page'))
    return (0 if page is not None else 1, page or 0, highlight.get('createdAt') or 0)


def group_highlights_by_page(highlights):
    """Group already-sorted highlights into `[{'page', 'highlights'}]`."""
    groups = []
    index = {}
    for highlight in highlights:
        page = sanitize_page(highlight.get('page'))
        key = page if page is not None else NO_PAGE_GROUP
        if key not in index:
            index[key] = {'page': key, 'highlights': []}
            groups.append(index[key])
        index[key]['highlights'].append(highlight)
    return groups


def _document_id_from(app_ctx, value):
    document_id = sanitize_doc_id(value)
    if not document_id:
        return None, app_ctx.error('documentId is required.', 400)
    return document_id, None


def create_highlight(app_ctx, request):
    decoded_token, auth_error = app_ctx.require_user(request)
    if auth_error:
        return auth_error
    uid = decoded_token['uid']
    payload = app_ctx.get_json_payload(request)

    document_id, id_error = _document_id_from(app_ctx, payload.get('documentId'))
    if id_error:
        return id_error
    text = str(payload.get('text', '') or '').strip()[:MAX_HIGHLIGHT_TEXT_LEN]
    if not text:
        return app_ctx.error('Highlight text is required.', 400)
    page = sanitize_page(payload.get('page'))
    if page is None:
        return app_ctx.error('page must be a positive integer.', 400)

    try:
        if not documents_repo.get_document_doc(app_ctx.db, uid, document_id).exists:
            return app_ctx.error('Document not found.', 404)
        now_ts = app_ctx.time.time()
        ref = highlights_repo.add_highlight(app_ctx.db, uid, document_id, {
            'text': text,
            'page': page,
            'note': str(payload.get('note', '') or '').strip()[:MAX_NOTE_LEN],
            'color': str(payload.get('color', '') or '').strip()[:MAX_COLOR_LEN],
            'createdAt': now_ts,
            'updatedAt': now_ts,
        })
        return app_ctx.jsonify({'highlightId': ref.id}), 201
    except Exception as e:
        app_ctx.logger.error(f"Error saving highlight for {uid}/{document_id}: {e}")
        return app_ctx.error('Could not save highlight.', 500)


def list_highlights(app_ctx, request):
    decoded_token, auth_error = app_ctx.require_user(request)
    if auth_error:
        return auth_error
    uid = decoded_token['uid']
    document_id, id_error = _document_id_from(app_ctx, request.args.get('documentId'))
    if id_error:
        return id_error

    try:
        docs = highlights_repo.list_highlights(app_ctx.db, uid, document_id, MAX_HIGHLIGHTS_PER_DOCUMENT)
        highlights = sorted((snapshot_to_dict(doc) for doc in docs), key=highlight_sort_key)
        return app_ctx.jsonify({
            'documentId': document_id,
            'highlights': highlights,
            'pages': group_highlights_by_page(highlights),
        })
    except Exception as e:
        app_ctx.logger.error(f"Error loading highlights for {uid}/{document_id}: {e}")
        return app_ctx.error('Failed to load highlights.', 500)


def update_highlight(app_ctx, request, highlight_id):
    decoded_token, auth_error = app_ctx.require_user(request)
    if auth_error:
        return auth_error
    uid = decoded_token['uid']
    payload = app_ctx.get_json_payload(request)
    document_id, id_error = _document_id_from(app_ctx, payload.get('documentId'))
    if id_error:
        return id_error
    highlight_id = sanitize_doc_id(highlight_id)
    if not highlight_id:
        return app_ctx.error('Highlight not found.', 404)

    updates = {}
    if 'note' in payload:
        updates['note'] = str(payload.get('note', '') or '').strip()[:MAX_NOTE_LEN]
    if 'color' in payload:
        updates['color'] = str(payload.get('color', '') or '').strip()[:MAX_COLOR_LEN]
    if not updates:
        return app_ctx.error('Nothing to update.', 400)

    try:
        ref = highlights_repo.highlight_doc_ref(app_ctx.db, uid, document_id, highlight_id)
        if not ref.get().exists:
            return app_ctx.error('Highlight not found.', 404)
        updates['updatedAt'] = app_ctx.time.time()
        ref.update(updates)
        return app_ctx.jsonify({'ok': True, 'highlightId': highlight_id})
    except Exception as e:
        app_ctx.logger.error(f"Error updating highlight {highlight_id}: {e}")
        return app_ctx.error('Could not update highlight.', 500)


def delete_highlight(app_ctx, request, highlight_id):
    decoded_token, auth_error = app_ctx.require_user(request)
    if auth_error:
        return auth_error
    uid = decoded_token['uid']
    document_id, id_error = _document_id_from(app_ctx, request.args.get('documentId'))
    if id_error:
        return id_error
    highlight_id = sanitize_doc_id(highlight_id)
    if not highlight_id:
        return app_ctx.error('Highlight not found.', 404)

    try:
        ref = highlights_repo.highlight_doc_ref(app_ctx.db, uid, document_id, highlight_id)
        if not ref.get().exists:
            return app_ctx.error('Highlight not found.', 404)
        ref.delete()
        return app_ctx.jsonify({'ok': True})
    except Exception as e:
        app_ctx.logger.error(f"Error deleting highlight {highlight_id}: {e}")
        return app_ctx.error('Could not delete highlight.', 500)
