"""
auth/models.py -- Domain dataclasses for credential records and operation results.

Pattern: Data class (pure data container, near-zero logic). CredentialStore
does the work; these types own the shape of what is stored and returned.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum

# User-facing failure messages. Clients match on these strings, so they are
# part of the wire contract.
MSG_USERNAME_TAKEN = "Sorry! That username is taken."
MSG_WRONG_PASSWORD = "wrong password"
MSG_OLD_PASSWORD_WRONG = "old password is wrong"
MSG_INTERNAL_ERROR = "internal error"


@dataclass(frozen=True)
class UserRecord:
    """Stored credential for one email.

    salt and hash are always written together: the record is serialized and
    put as a single value, so the store never holds one without the other.
    """

    salt: str
    hash: str

    def to_json(self) -> str:
        return json.dumps({"salt": self.salt, "hash": self.hash})

    @classmethod
    def from_value(cls, value: object) -> UserRecord:
        """Build a record from a decoded store value.

        Raises ValueError if the value is not an object with string salt/hash.
        """
        if not isinstance(value, dict):
            raise ValueError("credential record is not a JSON object")
        salt = value.get("salt")
        hash_ = value.get("hash")
        if not isinstance(salt, str) or not isinstance(hash_, str):
            raise ValueError("credential record is missing salt or hash")
        return cls(salt=salt, hash=hash_)


class FailureKind(str, Enum):
    """Why an operation failed. Internal only -- never sent to clients."""

    domain = "domain"  # expected rejection: wrong password, email taken
    infrastructure = "infrastructure"  # the store could not complete a call


@dataclass(frozen=True)
class Result:
    """Outcome of a CredentialStore operation.

    success=True carries the credential hash (except after deletion);
    success=False carries a user-facing message and a FailureKind.
    """

    success: bool
    hash: str | None = None
    message: str | None = None
    kind: FailureKind | None = None

    @classmethod
    def ok(cls, hash: str | None = None) -> Result:
        return cls(success=True, hash=hash)

    @classmethod
    def fail(cls, message: str, kind: FailureKind = FailureKind.domain) -> Result:
        return cls(success=False, message=message, kind=kind)

    def to_dict(self) -> dict:
        """Client-facing representation: success plus hash or message, never kind."""
        body: dict = {"success": self.success}
        if self.hash is not None:
            body["hash"] = self.hash
        if self.message is not None:
            body["message"] = self.message
        return body
