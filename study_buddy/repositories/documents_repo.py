"""Firestore accessors for per-user uploaded documents."""

USERS = 'users'
DOCUMENTS = 'documents'


def document_doc_ref(db, uid, document_id):
    return db.collection(USERS).document(uid).collection(DOCUMENTS).document(document_id)


def get_document_doc(db, uid, document_id):
    return document_doc_ref(db, uid, document_id).get()


def update_document(db, uid, document_id, updates):
    return document_doc_ref(db, uid, document_id).update(updates)
