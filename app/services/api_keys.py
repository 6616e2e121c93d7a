"""
Merchant API key issuance and validation.

Key format: a tier prefix followed by 40 random hex characters.
  onp_pk_...  publishable (safe to embed client-side, checkout only)
  onp_sk_...  secret (server-side callers)

Only a bcrypt hash of the key is stored. Because a salted hash cannot be
indexed, validation scans every active key and compares against each hash.
The plaintext is returned exactly once, from issue_key().
"""
import logging
import re
import secrets
from typing import List, Optional

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from app import models
from app.config import API_KEY_HASH_ROUNDS

logger = logging.getLogger(__name__)

PUBLISHABLE = "publishable"
SECRET = "secret"

KEY_PREFIXES = {
    PUBLISHABLE: "onp_pk_",
    SECRET: "onp_sk_",
}
_TIER_BY_CODE = {"pk": PUBLISHABLE, "sk": SECRET}
_KEY_PATTERN = re.compile(r"^onp_(pk|sk)_[0-9a-f]{40}$")

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=API_KEY_HASH_ROUNDS,
)


class IssuedKey:
    def __init__(self, key: str, record: models.ApiKey):
        self.key = key
        self.record = record


def key_tier(presented: str) -> Optional[str]:
    """Tier of a presented key, or None if it is not a well-formed key."""
    match = _KEY_PATTERN.match(presented or "")
    if match is None:
        return None
    return _TIER_BY_CODE[match.group(1)]


def record_tier(record: models.ApiKey) -> str:
    for tier, prefix in KEY_PREFIXES.items():
        if record.key_hint.startswith(prefix):
            return tier
    raise ValueError(f"API key {record.id} has an unrecognised hint")


def masked_key(record: models.ApiKey) -> str:
    prefix, last4 = record.key_hint[:-4], record.key_hint[-4:]
    return f"{prefix}****{last4}"


def generate_key(tier: str = PUBLISHABLE) -> str:
    if tier not in KEY_PREFIXES:
        raise ValueError(f"Unknown key tier: {tier}")
    return KEY_PREFIXES[tier] + secrets.token_hex(20)


def issue_key(owner_id: str, name: str, db: Session, tier: str = PUBLISHABLE) -> IssuedKey:
    key = generate_key(tier)
    record = models.ApiKey(
        user_id=owner_id,
        name=name,
        key_hash=pwd_context.hash(key),
        key_hint=KEY_PREFIXES[tier] + key[-4:],
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info("Issued %s API key %s for user %s", tier, record.id, owner_id)
    return IssuedKey(key=key, record=record)


def _matches(presented: str, key_hash: str) -> bool:
    try:
        return pwd_context.verify(presented, key_hash)
    except ValueError:
        # Corrupt or foreign hash format: not a match
        return False


def validate_key(presented: str, db: Session) -> Optional[models.ApiKey]:
    """
    Return the active key record matching `presented`, or None.

    Malformed, revoked and unknown keys are indistinguishable to the caller.
    On a match, last_used_at is refreshed as a best-effort side effect.
    """
    if key_tier(presented) is None:
        return None

    active = db.query(models.ApiKey).filter(models.ApiKey.is_active.is_(True)).all()
    for record in active:
        if _matches(presented, record.key_hash):
            record.last_used_at = models.utcnow()
            db.commit()
            db.refresh(record)
            return record
    return None


def revoke_key(key_id: str, owner_id: str, db: Session) -> None:
    """Deactivate a key. Silently does nothing for keys owned by someone else."""
    updated = db.query(models.ApiKey).filter(
        models.ApiKey.id == key_id,
        models.ApiKey.user_id == owner_id,
    ).update({models.ApiKey.is_active: False}, synchronize_session="fetch")
    db.commit()
    if updated:
        logger.info("Revoked API key %s for user %s", key_id, owner_id)


def list_keys(owner_id: str, db: Session) -> List[models.ApiKey]:
    return db.query(models.ApiKey).filter(
        models.ApiKey.user_id == owner_id,
        models.ApiKey.is_active.is_(True),
    ).order_by(models.ApiKey.created_at.desc()).all()
