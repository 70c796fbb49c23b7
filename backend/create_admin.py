#!/usr/bin/env python3
"""Provision a console admin: local identity account plus admin profile."""
import argparse
import getpass
import sys
import uuid
from pathlib import Path

# Add memberdesk to path
sys.path.insert(0, str(Path(__file__).parent))

from memberdesk.database import Base, SessionLocal, engine
from memberdesk.services.document_store import DocumentStore
from memberdesk.services.identity import IdentityError, LocalIdentityProvider
from memberdesk.use_cases.admins import ADMINS_COLLECTION


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("email")
    parser.add_argument("--name", default="Admin")
    parser.add_argument("--uid", default=None, help="Account uid (defaults to a random id)")
    parser.add_argument(
        "--profile-only",
        action="store_true",
        help="Only write the admin profile for an existing provider account (requires --uid)",
    )
    args = parser.parse_args()

    # Tables are normally created by `alembic upgrade head`; create_all keeps fresh dev databases usable.
    Base.metadata.create_all(bind=engine)

    if args.profile_only:
        if not args.uid:
            print("❌ --profile-only requires --uid.")
            return 1
        uid = args.uid
    else:
        password = getpass.getpass("Password: ")
        if len(password) < 8:
            print("❌ Password must be at least 8 characters.")
            return 1

        uid = args.uid or f"admin-{uuid.uuid4().hex[:12]}"
        identity = LocalIdentityProvider(SessionLocal)
        try:
            identity.create_account(uid=uid, email=args.email, password=password, display_name=args.name)
        except IdentityError as exc:
            print(f"❌ Could not create account: {exc}")
            return 1

    store = DocumentStore(SessionLocal)
    store.set(ADMINS_COLLECTION, uid, {"name": args.name, "photo_url": ""}, merge=True)

    print(f"✅ Admin created: uid={uid} email={args.email}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
