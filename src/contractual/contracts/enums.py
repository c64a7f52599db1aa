"""Verbs, modes and outcome kinds used across subsystem boundaries."""

from enum import StrEnum


class HttpMethod(StrEnum):
    """Verb a contract is exposed under.

    The transport layer maps these onto its own routing; the registry only
    groups operations by them.
    """

    GET = "get"
    POST = "post"
    PUT = "put"
    PATCH = "patch"
    DELETE = "delete"


class SearchMode(StrEnum):
    """How a bound ``get`` contract interprets its payload.

    Values:
        ID_ONLY: Single id or id list lookups, otherwise get-all
        FREE_TEXT: As ID_ONLY, plus ranked text search on the search field
        NONE: Always returns every record visible to the caller
    """

    ID_ONLY = "id_only"
    FREE_TEXT = "free_text"
    NONE = "none"


class ValidationStatus(StrEnum):
    """Result of validating a value against a schema."""

    PASS = "pass"
    FAIL = "fail"


class AuthDecision(StrEnum):
    """Outcome of evaluating an authorization rule.

    TARGET_MISSING is only produced by ownership alternatives whose target
    record does not exist; the processor maps it through MissingTargetPolicy.
    """

    ALLOW = "allow"
    DENY_UNAUTHENTICATED = "deny_unauthenticated"
    DENY_UNAUTHORIZED = "deny_unauthorized"
    TARGET_MISSING = "target_missing"


class MissingTargetPolicy(StrEnum):
    """What an ownership check does when the target record is absent.

    NOT_FOUND lets the call proceed so the handler reports 404.
    FORBIDDEN answers 403 without touching the handler.
    """

    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"


class DuplicateContentMode(StrEnum):
    """Equality used to reject a create that repeats a prior create."""

    FULL_RECORD = "full_record"
    FIELDS = "fields"
    DISABLED = "disabled"
