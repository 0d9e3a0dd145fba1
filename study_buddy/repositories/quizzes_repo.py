"""Firestore accessors for saved quizzes and their results."""

from .query_utils import apply_where

QUIZZES = 'quizzes'
RESULTS = 'results'


def quiz_doc_ref(db, quiz_id):
    return db.collection(QUIZZES).document(quiz_id)


def create_quiz_doc_ref(db):
    return db.collection(QUIZZES).document()


def get_quiz_doc(db, quiz_id):
    return quiz_doc_ref(db, quiz_id).get()


def results_collection(db, quiz_id):
    return quiz_doc_ref(db, quiz_id).collection(RESULTS)


def results_by_taker_query(db, quiz_id, taker_id):
    return apply_where(results_collection(db, quiz_id), 'takerId', '==', taker_id)


def list_results(db, quiz_id, limit):
    return list(results_collection(db, quiz_id).limit(limit).stream())


def taker_copy_query(db, owner_id, original_quiz_id):
    query = apply_where(db.collection(QUIZZES), 'ownerId', '==', owner_id)
    query = apply_where(query, 'originalQuizId', '==', original_quiz_id)
    return query.limit(1)
