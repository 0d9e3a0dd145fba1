"""Business logic handlers for document text extraction and key concepts."""

import logging

from study_buddy.repositories import documents_repo
from study_buddy.repositories.query_utils import sanitize_doc_id
from study_buddy.services import ai_service, file_service, prompt_registry
from study_buddy.services.ocr_service import ExtractionError

STORAGE_PATH_PREFIX = 'documents'
MAX_STORAGE_PATH_LEN = 1024


def user_storage_path(uid, file_path):
    """Return `file_path` if it lives under the caller's upload folder, else ''."""
    path = str(file_path or '').strip().lstrip('/')
    if not path or len(path) > MAX_STORAGE_PATH_LEN:
        return ''
    parts = path.split('/')
    if len(parts) < 3 or parts[0] != STORAGE_PATH_PREFIX or parts[1] != uid:
        return ''
    if any(part in ('', '.', '..') for part in parts):
        return ''
    return path


def extract_text(app_ctx, request):
    config = app_ctx.config
    allowed, retry_after = app_ctx.check_rate_limit(
        key=f"extract_text:{app_ctx.client_key(request)}",
        limit=config.extract_rate_limit_max_requests,
        window_seconds=config.extract_rate_limit_window_seconds,
    )
    if not allowed:
        return app_ctx.build_rate_limited_response(
            'Too many upload requests right now. Please wait and try again.',
            retry_after,
        )

    upload = request.files.get('file')
    if upload is None or not upload.filename:
        return app_ctx.error('No file uploaded.', 400)
    data = upload.read()
    kind = file_service.detect_document_kind(data, upload.filename, upload.mimetype)
    if not kind:
        return app_ctx.error('Unsupported file type. Upload a PDF or an image.', 400)

    try:
        result = app_ctx.text_extractor.extract(data, kind)
    except ExtractionError as e:
        app_ctx.logger.warning(f"Could not extract text from {upload.filename!r}: {e}")
        return app_ctx.error('Could not read text from this file.', 400)
    except Exception as e:
        app_ctx.logger.error(f"OCR failure for {upload.filename!r}: {e}")
        return app_ctx.error('Failed to extract text.', 500)

    app_ctx.log_event(logging.INFO, 'text_extracted', kind=kind, method=result.method, page_count=len(result.pages))
    return app_ctx.jsonify(result.to_dict())


def document_text(app_ctx, request):
    config = app_ctx.config
    allowed, retry_after = app_ctx.check_rate_limit(
        key=f"document_text:{app_ctx.client_key(request)}",
        limit=config.extract_rate_limit_max_requests,
        window_seconds=config.extract_rate_limit_window_seconds,
    )
    if not allowed:
        return app_ctx.build_rate_limited_response(
            'Too many document requests right now. Please wait and try again.',
            retry_after,
        )

    payload = app_ctx.get_json_payload(request)
    file_url, url_error = file_service.validate_storage_url(payload.get('fileUrl'))
    if url_error:
        return app_ctx.error(url_error, 400)

    try:
        data, content_type = file_service.download_url_bytes(
            file_url,
            max_bytes=app_ctx.config.max_upload_bytes,
            http_get=app_ctx.http_get,
        )
    except file_service.DownloadError as e:
        app_ctx.logger.warning(f"Document download failed: {e}")
        return app_ctx.error('Could not download the document.', 400)

    kind = file_service.detect_document_kind(data, '', content_type)
    try:
        result = app_ctx.text_extractor.extract(data, kind)
    except ExtractionError as e:
        app_ctx.logger.warning(f"Could not extract text from downloaded document: {e}")
        return app_ctx.error('Could not read text from this document.', 400)
    except Exception as e:
        app_ctx.logger.error(f"Error extracting document text: {e}")
        return app_ctx.error('Failed to extract text.', 500)
    return app_ctx.jsonify({'pages': result.pages, 'method': result.method})


def process_document(app_ctx, request):
    decoded_token, auth_error = app_ctx.require_user(request)
    if auth_error:
        return auth_error
    uid = decoded_token['uid']

    if app_ctx.client is None:
        return app_ctx.error('Server is not configured with a Gemini API key.', 500)

    payload = app_ctx.get_json_payload(request)
    document_id = sanitize_doc_id(payload.get('documentId'))
    if not document_id:
        return app_ctx.error('Missing documentId or filePath.', 400)

    try:
        snapshot = documents_repo.get_document_doc(app_ctx.db, uid, document_id)
        if not snapshot.exists:
            return app_ctx.error('Document not found.', 404)
        stored_path = (snapshot.to_dict() or {}).get('filePath')
        file_path = user_storage_path(uid, payload.get('filePath') or stored_path)
        if not file_path:
            return app_ctx.error('Missing documentId or filePath.', 400)

        data, content_type = file_service.download_storage_blob(
            app_ctx.bucket,
            file_path,
            max_bytes=app_ctx.config.max_upload_bytes,
        )
        kind = file_service.detect_document_kind(data, file_path, content_type)
        pages = app_ctx.text_extractor.extract(data, kind).pages
        if not any(page.strip() for page in pages):
            return app_ctx.error('No text could be extracted from this document.', 400)

        prompt = prompt_registry.build_key_concepts_prompt(pages)
        raw_reply = ai_service.generate_text(app_ctx.client, app_ctx.config.gemini_model, prompt)
        key_concepts = ai_service.sanitize_key_concepts(
            ai_service.extract_json_payload(raw_reply),
            page_count=len(pages),
        )
        if not key_concepts:
            return app_ctx.error('Failed to parse AI response.', 500)

        documents_repo.update_document(app_ctx.db, uid, document_id, {
            'keyConcepts': key_concepts,
            'keyConceptsUpdatedAt': app_ctx.time.time(),
        })
        app_ctx.log_event(logging.INFO, 'document_processed', uid=uid, document_id=document_id, page_count=len(pages))
        return app_ctx.jsonify({'message': 'Document processed successfully.', 'keyConcepts': key_concepts})
    except file_service.DownloadError as e:
        app_ctx.logger.warning(f"Storage download failed for {uid}/{document_id}: {e}")
        return app_ctx.error('Could not download the document.', 400)
    except ExtractionError as e:
        app_ctx.logger.warning(f"Could not extract text for {uid}/{document_id}: {e}")
        return app_ctx.error('Could not read text from this document.', 400)
    except Exception as e:
        app_ctx.logger.error(f"Error processing document {uid}/{document_id}: {e}")
        return app_ctx.error('Failed to process document.', 500)
