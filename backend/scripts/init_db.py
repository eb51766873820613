#!/usr/bin/env python
"""
Create all tables and, optionally, a user to sign in as.
Run with: cd backend; python scripts/init_db.py [email]
Requires DATABASE_URL and SECRET_KEY in .env.
"""

import os
import sys

# Add lifesync to path
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from lifesync.auth import create_access_token
from lifesync.database import Base, SessionLocal, engine
from lifesync.models import User  # noqa: F401  registers every table on Base


def init_db(email=None):
    Base.metadata.create_all(bind=engine)
    print(f"Tables created on {engine.url.render_as_string(hide_password=True)}")
    if not email:
        return

    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email).first()
        if user is None:
            user = User(email=email, name=email.split("@")[0])
            db.add(user)
            db.commit()
            print(f"Created user {email}")
        else:
            print(f"User {email} already exists")
        print(f"Bearer token: {create_access_token({'sub': email})}")
    finally:
        db.close()


if __name__ == "__main__":
    init_db(sys.argv[1] if len(sys.argv) > 1 else None)
