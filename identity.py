"""
One user view over the email/password and phone identities.

A session may hold either identity or both. The password identity owns the
profile row; a phone identity is attached to a profile through
profiles.firebase_uid, or matched to one by phone number.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

import mysql.connector

logger = logging.getLogger(__name__)


class SyncResult(enum.Enum):
    UPDATED = 'updated'
    LINKED = 'linked'
    UNLINKED = 'unlinked'
    ERROR = 'error'


@dataclass
class UnifiedUser:
    id: str
    email: Optional[str]
    phone_number: Optional[str]
    email_verified: bool
    phone_verified: bool
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    password_user: Optional[dict] = None
    phone_user: Optional[dict] = None

    @property
    def has_full_account(self):
        return self.password_user is not None

    @property
    def label(self):
        return self.display_name or self.email or self.phone_number or 'User'

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'phoneNumber': self.phone_number,
            'emailVerified': self.email_verified,
            'phoneVerified': self.phone_verified,
        }


def merge_user(password_user, phone_user):
    if not password_user and not phone_user:
        return None

    pw = password_user or {}
    ph = phone_user or {}
    metadata = pw.get('user_metadata') or {}

    return UnifiedUser(
        id=pw.get('id') or ph.get('uid') or '',
        email=pw.get('email') or ph.get('email') or None,
        phone_number=ph.get('phone_number') or metadata.get('phone') or None,
        email_verified=bool(pw.get('email_confirmed_at')),
        phone_verified=bool(phone_user),
        display_name=ph.get('display_name') or metadata.get('display_name') or None,
        avatar_url=ph.get('photo_url') or metadata.get('avatar_url') or None,
        password_user=password_user or None,
        phone_user=phone_user or None,
    )


def ensure_profile(cur, password_user):
    metadata = password_user.get('user_metadata') or {}
    cur.execute(
        "INSERT IGNORE INTO profiles (id, email, phone, display_name) VALUES (%s, %s, %s, %s)",
        (password_user['id'], password_user.get('email'),
         metadata.get('phone'), metadata.get('display_name'))
    )


def sync_phone_identity(cur, phone_user):
    """Attach a freshly verified phone identity to a profile.

    The caller commits. Database failures are logged and reported as
    SyncResult.ERROR so they never block the sign-in itself.
    """
    uid = phone_user['uid']
    phone = phone_user.get('phone_number')
    try:
        cur.execute("SELECT id FROM profiles WHERE firebase_uid=%s", (uid,))
        profile = cur.fetchone()
        if profile:
            cur.execute(
                "UPDATE profiles SET phone=%s, phone_verified=TRUE WHERE firebase_uid=%s",
                (phone, uid)
            )
            return SyncResult.UPDATED

        if not phone:
            return SyncResult.UNLINKED

        cur.execute("SELECT id FROM profiles WHERE phone=%s LIMIT 1", (phone,))
        existing = cur.fetchone()
        if not existing:
            return SyncResult.UNLINKED

        cur.execute(
            "UPDATE profiles SET firebase_uid=%s, phone_verified=TRUE WHERE id=%s",
            (uid, existing['id'])
        )
        logger.info("Linked phone identity %s to profile %s", uid, existing['id'])
        return SyncResult.LINKED
    except mysql.connector.Error:
        logger.exception("Syncing phone identity %s failed", uid)
        return SyncResult.ERROR


def update_profile(cur, user, display_name=None, phone=None, bio=None):
    """Write profile fields for either kind of session.

    A full account whose profile row is missing gets one created first.
    Returns False when a phone-only session has no linked profile yet.
    """
    if user.has_full_account:
        cur.execute("SELECT id FROM profiles WHERE id=%s", (user.password_user['id'],))
        if not cur.fetchone():
            ensure_profile(cur, user.password_user)
        cur.execute(
            "UPDATE profiles SET display_name=%s, phone=%s, bio=%s WHERE id=%s",
            (display_name, phone, bio, user.password_user['id'])
        )
        return True

    if not user.phone_user:
        return False
    cur.execute("SELECT id FROM profiles WHERE firebase_uid=%s", (user.phone_user['uid'],))
    if not cur.fetchone():
        return False
    cur.execute(
        "UPDATE profiles SET display_name=%s, phone=%s, bio=%s WHERE firebase_uid=%s",
        (display_name, phone, bio, user.phone_user['uid'])
    )
    return True
