"""
LawPay token storage

- Database: source of truth for the connection and its encrypted tokens
- Redis: fast cache of the plain access token with the token's TTL
  (lawpay:access:{user_id}) and of the refresh token with twice that TTL
  (lawpay:refresh:{user_id})
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ..cache import cache
from ..encryption import decrypt_secret, encrypt_secret
from ..models_lawpay import LawPayConnection

logger = logging.getLogger(__name__)


def access_key(user_id: str) -> str:
    return f"lawpay:access:{user_id}"


def refresh_key(user_id: str) -> str:
    return f"lawpay:refresh:{user_id}"


def _cache_tokens(user_id: str, access_token: str, refresh_token: Optional[str], ttl: int) -> None:
    ttl = max(int(ttl), 1)
    cache.set(access_key(user_id), access_token, ttl)
    if refresh_token:
        cache.set(refresh_key(user_id), refresh_token, ttl * 2)


def store_connection(
    db: Session,
    user_id: str,
    access_token: str,
    refresh_token: Optional[str],
    expires_in: int,
    merchant_public_key: str,
    merchant_name: Optional[str] = None,
    scope: Optional[str] = None,
) -> LawPayConnection:
    """Persist a new connection; earlier live connections of the user are revoked"""
    now = datetime.utcnow()

    db.query(LawPayConnection).filter(
        LawPayConnection.user_id == user_id, LawPayConnection.revoked_at.is_(None)
    ).update({"revoked_at": now, "updated_at": now}, synchronize_session=False)

    connection = LawPayConnection(
        user_id=user_id,
        merchant_public_key=merchant_public_key,
        merchant_name=merchant_name,
        scope=scope,
        access_token=encrypt_secret(access_token),
        refresh_token=encrypt_secret(refresh_token) if refresh_token else None,
        expires_at=now + timedelta(seconds=int(expires_in)),
    )
    db.add(connection)
    db.commit()
    db.refresh(connection)

    _cache_tokens(user_id, access_token, refresh_token, expires_in)

    logger.info(f"✅ LawPay connection {connection.id} stored for user {user_id}")
    return connection


def get_active_connection(db: Session, user_id: str) -> Optional[LawPayConnection]:
    """Latest unrevoked, unexpired connection"""
    return (
        db.query(LawPayConnection)
        .filter(
            LawPayConnection.user_id == user_id,
            LawPayConnection.revoked_at.is_(None),
            LawPayConnection.expires_at > datetime.utcnow(),
        )
        .order_by(LawPayConnection.created_at.desc())
        .first()
    )


def get_access_token(db: Session, user_id: str) -> Optional[str]:
    """Cached access token, falling back to the encrypted copy in the database"""
    cached = cache.get(access_key(user_id))
    if cached:
        return cached

    connection = get_active_connection(db, user_id)
    if not connection:
        return None

    try:
        access_token = decrypt_secret(connection.access_token)
        refresh_token = decrypt_secret(connection.refresh_token) if connection.refresh_token else None
    except ValueError:
        return None

    remaining = (connection.expires_at - datetime.utcnow()).total_seconds()
    _cache_tokens(user_id, access_token, refresh_token, remaining)
    return access_token


def revoke_connection(db: Session, user_id: str) -> Optional[LawPayConnection]:
    """Mark the user's live connections revoked and clear cached tokens; returns the latest one"""
    now = datetime.utcnow()
    connections = (
        db.query(LawPayConnection)
        .filter(LawPayConnection.user_id == user_id, LawPayConnection.revoked_at.is_(None))
        .order_by(LawPayConnection.created_at.desc())
        .all()
    )
    for connection in connections:
        connection.revoked_at = now
    db.commit()

    cache.delete(access_key(user_id), refresh_key(user_id))

    if connections:
        logger.info(f"🔌 Revoked {len(connections)} LawPay connection(s) for user {user_id}")
        return connections[0]
    return None
