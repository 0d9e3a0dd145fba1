"""Firestore accessors for document highlights and notes."""

from .documents_repo import document_doc_ref

HIGHLIGHTS = 'highlights'


def highlights_collection(db, uid, document_id):
    return document_doc_ref(db, uid, document_id).collection(HIGHLIGHTS)


def highlight_doc_ref(db, uid, document_id, highlight_id):
    return highlights_collection(db, uid, document_id).document(highlight_id)


def add_highlight(db, uid, document_id, payload):
    _update_time, ref = highlights_collection(db, uid, document_id).add(payload)
    return ref


def list_highlights(db, uid, document_id, limit):
    return list(highlights_collection(db, uid, document_id).limit(limit).stream())
