"""Firestore accessors for restaurant invites."""

RESTAURANTS = 'restaurants'
INVITES = 'invites'


def restaurant_doc_ref(db, restaurant_id):
    return db.collection(RESTAURANTS).document(restaurant_id)


def invites_collection(db, restaurant_id):
    return restaurant_doc_ref(db, restaurant_id).collection(INVITES)


def invite_doc_ref(db, restaurant_id, invite_code):
    return invites_collection(db, restaurant_id).document(invite_code)


def add_invite(db, restaurant_id, payload):
    _update_time, ref = invites_collection(db, restaurant_id).add(payload)
    return ref


def list_restaurants(db):
    return db.collection(RESTAURANTS).stream()


def find_invite(db, invite_code):
    """Scan every restaurant for the invite; return (restaurant_id, snapshot)."""
    for restaurant in list_restaurants(db):
        snapshot = invite_doc_ref(db, restaurant.id, invite_code).get()
        if snapshot.exists:
            return restaurant.id, snapshot
    return None, None
