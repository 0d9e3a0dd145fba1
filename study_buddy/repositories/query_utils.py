"""Shared Firestore query helpers.

Uses keyword-based filters to avoid positional-argument warnings in newer
Firestore SDK versions. Falls back to positional style for simple test doubles
that do not support keyword filters.
"""

import re

from google.cloud.firestore_v1.base_query import FieldFilter

DOC_ID_RE = re.compile(r'^[A-Za-z0-9_-]{1,128}$')


def apply_where(query, field_path, op_string, value):
    try:
        return query.where(filter=FieldFilter(field_path, op_string, value))
    except TypeError:
        return query.where(field_path, op_string, value)


def sanitize_doc_id(value):
    """Return a Firestore-safe document id, or '' for anything path-like."""
    doc_id = str(value or '').strip()
    if not DOC_ID_RE.match(doc_id):
        return ''
    return doc_id


def snapshot_to_dict(snapshot, id_field='id'):
    data = dict(snapshot.to_dict() or {})
    data[id_field] = snapshot.id
    return data
