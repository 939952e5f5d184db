"""
Email verification codes.

Six-digit codes are kept in Django's cache with a TTL, keyed by email. The
attempt count lives under its own key with the same TTL.
"""
import enum
import secrets
from dataclasses import dataclass

from django.conf import settings
from django.core.cache import cache

KEY_PREFIX = 'lifelink:verify:'


class VerificationStatus(enum.Enum):
    VERIFIED = 'verified'
    MISSING = 'missing'
    INVALID = 'invalid'
    LOCKED = 'locked'


@dataclass(frozen=True)
class VerificationResult:
    status: VerificationStatus
    attempts_remaining: int = 0

    @property
    def verified(self):
        return self.status is VerificationStatus.VERIFIED


def generate_code():
    return str(secrets.randbelow(900000) + 100000)


class VerificationCodeStore:
    def __init__(self, backend=None, ttl=None, max_attempts=None):
        self.backend = backend or cache
        self.ttl = settings.VERIFICATION_CODE_TTL if ttl is None else ttl
        self.max_attempts = settings.VERIFICATION_MAX_ATTEMPTS if max_attempts is None else max_attempts

    def _keys(self, email):
        key = KEY_PREFIX + email.strip().lower()
        return key, key + ':attempts'

    def issue(self, email):
        """Store a fresh code for `email`, replacing any previous one and its attempt count."""
        code = generate_code()
        code_key, attempts_key = self._keys(email)
        self.backend.set_many({code_key: code, attempts_key: 0}, timeout=self.ttl)
        return code

    def verify(self, email, code):
        """
        Check `code` against the one issued for `email`.

        Every call counts as an attempt. The counter is bumped with the cache's
        atomic `incr`, so concurrent guesses cannot get past `max_attempts`.
        """
        code_key, attempts_key = self._keys(email)
        expected = self.backend.get(code_key)
        if expected is None:
            return VerificationResult(VerificationStatus.MISSING)

        try:
            attempts = self.backend.incr(attempts_key)
        except ValueError:
            # Counter expired between the two reads
            return VerificationResult(VerificationStatus.MISSING)

        if attempts > self.max_attempts:
            self.backend.delete_many([code_key, attempts_key])
            return VerificationResult(VerificationStatus.LOCKED)

        if expected != str(code).strip():
            return VerificationResult(
                VerificationStatus.INVALID,
                attempts_remaining=self.max_attempts - attempts,
            )

        self.backend.delete_many([code_key, attempts_key])
        return VerificationResult(VerificationStatus.VERIFIED)
