"""
auth/passwords.py -- Credential codec: one-way password digests.

Security design decisions:
  bcrypt with a per-call random salt is the storage format for every digest
  written by this service. Callers only ever use the round trip
  (hash_password -> verify_password); nothing may depend on the algorithm.

  Legacy digests: accounts imported from the previous system carry
  md5(LEGACY_PASSWORD_SALT + password) as lowercase hex -- one static salt
  shared by every account. verify_password() still accepts them when the
  legacy salt is configured, and needs_rehash() tells the login path to
  replace them with bcrypt on the first successful login.

  Timing equalization: _DUMMY_HASH lets the login path run one bcrypt check
  even when the account does not exist, so response time does not reveal
  which accounts are registered.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import hashlib
import hmac

import bcrypt

from core.config import get_settings

_settings = get_settings()

_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes; longer inputs are truncated here
    explicitly because bcrypt 4.x rejects them instead of truncating.
    """
    pw_bytes = plain.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=_settings.bcrypt_rounds)).decode("utf-8")


def legacy_digest(plain: str, salt: str | None = None) -> str:
    """Return the previous system's static-salt digest of plain."""
    salt = _settings.legacy_password_salt if salt is None else salt
    return hashlib.md5((salt + plain).encode("utf-8")).hexdigest()  # noqa: S324 # nosec B324 -- legacy format


def is_bcrypt_hash(stored: str | None) -> bool:
    return bool(stored) and stored.startswith(_BCRYPT_PREFIXES)


def verify_password(plain: str, stored: str | None) -> bool:
    """Return True if plain matches the stored digest. Never raises."""
    if not stored:
        return False
    if is_bcrypt_hash(stored):
        try:
            return bcrypt.checkpw(plain.encode("utf-8")[:72], stored.encode("utf-8"))
        except (ValueError, TypeError):
            return False
    if not _settings.legacy_password_salt:
        return False
    return hmac.compare_digest(legacy_digest(plain), stored.lower())


def needs_rehash(stored: str | None) -> bool:
    """True when stored is not in the current bcrypt format."""
    return not is_bcrypt_hash(stored)


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("accounts_timing_dummy")


def burn_verification(plain: str) -> None:
    """Run one bcrypt check against the dummy hash and discard the result."""
    verify_password(plain, _DUMMY_HASH)
