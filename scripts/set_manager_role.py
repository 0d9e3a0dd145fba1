#!/usr/bin/env python3
"""Grant a user the manager role via a Firebase custom claim.

Usage:
  ./venv/bin/python scripts/set_manager_role.py --uid <firebase-uid>
  ./venv/bin/python scripts/set_manager_role.py --uid <firebase-uid> --role viewer
"""

import argparse

import firebase_admin
from dotenv import load_dotenv
from firebase_admin import auth

from study_buddy.config import AppConfig
from study_buddy.extensions import load_firebase_credential
from study_buddy.services.auth_service import set_manager_role


def init_firebase_app():
    if not firebase_admin._apps:
        firebase_admin.initialize_app(load_firebase_credential(AppConfig()))


def main():
    load_dotenv()
    parser = argparse.ArgumentParser(description="Set the role custom claim on a Firebase Auth user.")
    parser.add_argument("--uid", required=True, help="Firebase Auth uid of the user to promote.")
    parser.add_argument("--role", default="administrator", help="Role claim value (default: administrator).")
    args = parser.parse_args()

    init_firebase_app()
    try:
        message = set_manager_role(args.uid, auth_module=auth, role=args.role)
    except (ValueError, auth.UserNotFoundError) as exc:
        print(f"Error setting custom claim: {exc}")
        return 1
    print(message)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
