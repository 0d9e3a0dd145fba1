"""Per-client request throttling.

A Firestore counter per fixed window is shared by every server instance.
When Firestore is disabled or failing, each process falls back to its own
sliding window.
"""

import hashlib
import re
import threading
from collections import deque

from study_buddy.repositories import rate_limit_repo

KEY_PART_RE = re.compile(r'[^a-z0-9_.:@-]+')
COUNTER_TTL_WINDOWS = 3


def counter_id_for(key, window_seconds, window_start):
    raw = f"{key}|{window_seconds}|{int(window_start)}".encode('utf-8')
    return hashlib.sha256(raw).hexdigest()


def normalize_key_part(value, fallback='anon', max_len=120):
    raw = str(value or '').strip().lower()
    if not raw:
        return fallback
    safe = KEY_PART_RE.sub('_', raw)
    return safe[:max_len] if safe else fallback


def client_ip(request):
    forwarded = str(request.headers.get('X-Forwarded-For', '') or '').split(',')[0].strip()
    return forwarded or request.remote_addr or ''


def fixed_window(now_ts, window_seconds):
    """Return (window_start, seconds_until_next_window)."""
    window_start = int(now_ts // window_seconds) * int(window_seconds)
    return window_start, max(1, int(window_start + window_seconds - now_ts))


def consume_firestore_slot(db, firestore_module, collection_name, key, limit, window_seconds, now_ts):
    """Count one request against the shared window; return (allowed, retry_after)."""
    window_start, retry_after = fixed_window(now_ts, window_seconds)
    counter_ref = rate_limit_repo.counter_doc_ref(
        db,
        collection_name,
        counter_id_for(key, window_seconds, window_start),
    )

    @firestore_module.transactional
    def _consume(txn):
        snapshot = counter_ref.get(transaction=txn)
        current = (snapshot.to_dict() or {}) if snapshot.exists else {}
        used = int(current.get('count', 0) or 0)
        if used >= limit:
            return False, retry_after
        txn.set(counter_ref, {
            'key': key,
            'count': used + 1,
            'windowStart': window_start,
            'windowSeconds': int(window_seconds),
            'updatedAt': now_ts,
            'expiresAt': window_start + window_seconds * COUNTER_TTL_WINDOWS,
        }, merge=True)
        return True, 0

    return _consume(db.transaction())


class SlidingWindowLimiter:
    """Process-local limiter: at most `limit` hits per key in any `window_seconds`."""

    def __init__(self):
        self._hits = {}
        self._windows = {}
        self._last_sweep = None
        self._lock = threading.Lock()

    def _sweep(self, now_ts):
        """Drop keys whose newest hit has left that key's window."""
        for key in list(self._hits):
            hits = self._hits[key]
            if not hits or hits[-1] < now_ts - self._windows.get(key, 0):
                del self._hits[key]
                self._windows.pop(key, None)
        self._last_sweep = now_ts

    def hit(self, key, limit, window_seconds, now_ts):
        with self._lock:
            if self._last_sweep is None or now_ts - self._last_sweep >= window_seconds:
                self._sweep(now_ts)
            hits = self._hits.setdefault(key, deque())
            self._windows[key] = max(window_seconds, self._windows.get(key, 0))
            while hits and hits[0] < now_ts - window_seconds:
                hits.popleft()
            if len(hits) >= limit:
                return False, max(1, int(hits[0] + window_seconds - now_ts))
            hits.append(now_ts)
            return True, 0

    def tracked_keys(self):
        with self._lock:
            return len(self._hits)

    def hits_for(self, key):
        with self._lock:
            return len(self._hits.get(key, ()))


def check_rate_limit(
    key,
    limit,
    window_seconds,
    *,
    now_ts,
    fallback,
    db=None,
    firestore_module=None,
    counter_collection='rate_limit_counters',
    logger=None,
):
    """Return (allowed, retry_after_seconds); `db=None` skips Firestore."""
    if db is not None:
        try:
            return consume_firestore_slot(db, firestore_module, counter_collection, key, limit, window_seconds, now_ts)
        except Exception as exc:
            if logger is not None:
                logger.warning(f"Firestore rate limit unavailable, using in-memory window: {exc}")
    return fallback.hit(key, limit, window_seconds, now_ts)
