from __future__ import annotations


class ChallengeError(Exception):
    """Base for errors reported to the caller with their own kind and status."""
    status_code = 400
    kind = "challenge_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ChallengeError):
    status_code = 422
    kind = "validation_error"


class NotFound(ChallengeError):
    status_code = 404
    kind = "not_found"


class Forbidden(ChallengeError):
    status_code = 403
    kind = "forbidden"


class RateLimitExceeded(ChallengeError):
    status_code = 429
    kind = "rate_limit_exceeded"


class CapacityExceeded(ChallengeError):
    status_code = 409
    kind = "capacity_exceeded"


class CodeGenerationExhausted(ChallengeError):
    # systemic (e.g. broken random source); not user-correctable
    status_code = 503
    kind = "code_generation_exhausted"


class ConflictError(ChallengeError):
    status_code = 409
    kind = "conflict"
