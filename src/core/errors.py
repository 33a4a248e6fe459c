# src/core/errors.py - v1
"""Error taxonomy shared by the gateway, the provider adapters and the pipeline.

Every error raised on purpose by storegen derives from StoregenError so
callers can catch the family in one place. Messages always name the ceiling,
add-on or stage involved: the caller decides whether to wait, upgrade or
retry a single stage based on them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from storegen.llm.models import TokenUsage
    from storegen.pipeline.state import PipelineRunState


class StoregenError(Exception):
    """Base class for all storegen errors."""


class RateLimitedError(StoregenError):
    """A call was rejected before reaching the provider.

    Recoverable: the caller may retry after the window resets or surface a
    "quota exceeded" message.
    """

    def __init__(self, reason: str, scope: str | None = None):
        self.reason = reason
        self.scope = scope
        super().__init__(reason)


class ProviderUnavailableError(StoregenError):
    """Transient provider failure that survived every retry attempt."""

    def __init__(
        self,
        provider: str,
        attempts: int,
        error_kind: str,
        last_error: BaseException,
    ):
        self.provider = provider
        self.attempts = attempts
        self.error_kind = error_kind
        self.last_error = last_error
        self.status_code: int | None = getattr(last_error, "status_code", None)
        super().__init__(
            f"Provider '{provider}' unavailable after {attempts} attempts "
            f"({error_kind}): {last_error}"
        )


class ProviderNotConfiguredError(StoregenError):
    """The selected provider has no API key."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"{provider} API key is not configured")


class SchemaParseError(StoregenError):
    """The model answered, but not with the expected JSON shape.

    The call already consumed budget, so the usage travels with the error
    and the gateway still bills it.
    """

    def __init__(
        self,
        message: str,
        raw_content: str,
        usage: TokenUsage | None = None,
        model: str | None = None,
    ):
        self.raw_content = raw_content
        self.usage = usage
        self.model = model
        super().__init__(f"{message}: {raw_content[:500]}")


class EntitlementError(StoregenError):
    """The tenant lacks an active add-on subscription or remaining quota."""

    def __init__(self, addon: str, tenant_id: str, reason: str):
        self.addon = addon
        self.tenant_id = tenant_id
        self.reason = reason
        super().__init__(
            f"Add-on '{addon}' unavailable for tenant '{tenant_id}': {reason}"
        )


class InvalidRequestError(StoregenError, ValueError):
    """The request was built incorrectly by the calling code."""


class UnsupportedContentError(InvalidRequestError):
    """A message carries a content part the provider payload cannot express."""

    def __init__(self, content_type: Any):
        self.content_type = content_type
        super().__init__(f"Unsupported message content type: {content_type!r}")


class ProductNotFoundError(StoregenError):
    """The product does not exist for this tenant."""

    def __init__(self, tenant_id: str, product_id: str):
        self.tenant_id = tenant_id
        self.product_id = product_id
        super().__init__(f"Product '{product_id}' not found for tenant '{tenant_id}'")


class PipelineStageError(StoregenError):
    """A pipeline stage failed; earlier stages stay stored and can be resumed."""

    def __init__(
        self,
        stage: str,
        cause: BaseException,
        completed: dict[str, Any],
        state: PipelineRunState,
    ):
        self.stage = stage
        self.cause = cause
        self.completed = completed
        self.state = state
        super().__init__(f"Pipeline stage '{stage}' failed: {cause}")
