"""
auth/credentials.py -- Salted password hashing and the credential lifecycle.

Security design decisions:
  Hashing: HMAC-SHA256 keyed by a per-record random salt, hex encoded. The
       salt is 16 hex characters from the secrets module. A password is
       always hashed from plaintext at write time; stored hashes are never
       re-hashed.

  Comparison: hmac.compare_digest, so a mismatch does not return faster
       based on how many leading characters agree.

  Enumeration: verify() returns the same "wrong password" message whether
       the email is unknown, the password is wrong, or the record could not
       be read. The distinct cause is logged, never returned.

  Atomicity: salt and hash are serialized into one value and written with a
       single put(). Signup checks existence and then writes in two calls;
       two concurrent signups for the same email can both pass the check and
       the later write wins. The store has no conditional write to close this.

Error model: every public method returns a Result. StoreError from the store
is caught at the call site and mapped to a generic message; nothing is
retried.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets

from auth.models import (
    MSG_INTERNAL_ERROR,
    MSG_OLD_PASSWORD_WRONG,
    MSG_USERNAME_TAKEN,
    MSG_WRONG_PASSWORD,
    FailureKind,
    Result,
    UserRecord,
)
from kv.store import KeyValueStore, StoreError

logger = logging.getLogger("credvault.auth")

DEFAULT_SALT_LENGTH = 16


# ---------------------------------------------------------------------------
# Hashing primitives
# ---------------------------------------------------------------------------


def generate_salt(length: int = DEFAULT_SALT_LENGTH) -> str:
    """Return `length` cryptographically random lowercase hex characters."""
    if length < 0:
        raise ValueError("salt length must not be negative")
    # token_hex(n) yields 2n characters; round up, then trim odd lengths.
    return secrets.token_hex((length + 1) // 2)[:length]


def hash_password(password: str, salt: str) -> str:
    """Return hex HMAC-SHA256 of password keyed by salt (64 characters).

    Lone surrogates (valid in JSON strings) are encoded as-is rather than
    rejected, so any str password hashes.
    """
    return hmac.new(
        salt.encode("utf-8", "surrogatepass"),
        password.encode("utf-8", "surrogatepass"),
        hashlib.sha256,
    ).hexdigest()


# ---------------------------------------------------------------------------
# Credential store
# ---------------------------------------------------------------------------


class CredentialStore:
    """Credential operations for user records keyed by email.

    The store handle is injected so tests can pass a MemoryStore and
    production can pass a SQLStore.

    Usage:
        creds = CredentialStore(open_store("memory://"))
        creds.signup("a@x.com", "pw1")        # Result(success=True, hash=...)
        creds.verify("a@x.com", "pw1")        # same hash
        creds.delete_account("a@x.com", "pw1")
    """

    def __init__(self, store: KeyValueStore, salt_length: int = DEFAULT_SALT_LENGTH) -> None:
        self.store = store
        self.salt_length = salt_length

    def exists(self, email: str) -> bool:
        """Return True if a record is stored under email. Raises StoreError on read failure."""
        return self.store.get(email) is not None

    def set_credentials(self, email: str, password: str) -> Result:
        """Write a fresh salt and hash for email, replacing any existing record."""
        salt = generate_salt(self.salt_length)
        record = UserRecord(salt=salt, hash=hash_password(password, salt))
        try:
            self.store.put(email, record.to_json())
        except StoreError as exc:
            logger.error("Credential write failed for %s: %s", email, exc)
            return Result.fail(MSG_INTERNAL_ERROR, FailureKind.infrastructure)
        return Result.ok(record.hash)

    def signup(self, email: str, password: str) -> Result:
        """Create a record for email. Never overwrites an existing one."""
        try:
            taken = self.exists(email)
        except StoreError as exc:
            logger.error("Existence check failed for %s: %s", email, exc)
            return Result.fail(MSG_INTERNAL_ERROR, FailureKind.infrastructure)
        if taken:
            logger.info("Signup rejected for %s: already registered", email)
            return Result.fail(MSG_USERNAME_TAKEN)
        result = self.set_credentials(email, password)
        if result.success:
            logger.info("Signup succeeded for %s", email)
        return result

    def verify(self, email: str, password: str) -> Result:
        """Check password against the stored record.

        Unknown email, unreadable record, and mismatch all return
        MSG_WRONG_PASSWORD so the response does not reveal which one happened.
        """
        try:
            value = self.store.get_json(email)
        except StoreError as exc:
            logger.error("Credential read failed for %s: %s", email, exc)
            return Result.fail(MSG_WRONG_PASSWORD, FailureKind.infrastructure)
        except ValueError:
            logger.error("Stored credential for %s is not valid JSON", email)
            return Result.fail(MSG_WRONG_PASSWORD, FailureKind.infrastructure)

        if value is None:
            logger.info("Verify failed for %s: no such record", email)
            return Result.fail(MSG_WRONG_PASSWORD)

        try:
            record = UserRecord.from_value(value)
        except ValueError as exc:
            logger.error("Stored credential for %s is malformed: %s", email, exc)
            return Result.fail(MSG_WRONG_PASSWORD, FailureKind.infrastructure)

        expected = hash_password(password, record.salt)
        if not hmac.compare_digest(record.hash.encode("utf-8", "surrogatepass"), expected.encode("utf-8")):
            logger.info("Verify failed for %s: password mismatch", email)
            return Result.fail(MSG_WRONG_PASSWORD)
        return Result.ok(record.hash)

    def change_password(self, email: str, old_password: str, new_password: str) -> Result:
        """Replace the record's salt and hash after verifying old_password."""
        if not self.verify(email, old_password).success:
            return Result.fail(MSG_OLD_PASSWORD_WRONG)
        result = self.set_credentials(email, new_password)
        if not result.success:
            return Result.fail(MSG_INTERNAL_ERROR, FailureKind.infrastructure)
        logger.info("Password changed for %s", email)
        return result

    def delete_account(self, email: str, password: str) -> Result:
        """Remove the record for email after verifying password."""
        if not self.verify(email, password).success:
            return Result.fail(MSG_WRONG_PASSWORD)
        try:
            self.store.delete(email)
        except StoreError as exc:
            logger.error("Credential delete failed for %s: %s", email, exc)
            return Result.fail(MSG_INTERNAL_ERROR, FailureKind.infrastructure)
        logger.info("Account deleted for %s", email)
        return Result.ok()

    def forgot_password(self, email: str) -> None:
        """Accept a password-reset request. No reset mail is sent."""
        logger.info("Password reset requested for %s (not supported)", email)
