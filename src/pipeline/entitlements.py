# src/pipeline/entitlements.py - v1
"""Add-on subscription checks and usage consumption.

A tenant may generate a stage only with an active or trial subscription
to the stage's add-on that is not expired and has at least one unit left.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel

from storegen.core.errors import EntitlementError

logger = logging.getLogger(__name__)

SubscriptionStatus = Literal["active", "trial", "cancelled", "expired"]

_USABLE_STATUSES = ("active", "trial")


class AddonSubscription(BaseModel):
    tenant_id: str
    addon: str
    status: SubscriptionStatus = "active"
    usage_remaining: int = 0
    expires_at: datetime | None = None


class BaseEntitlementService(ABC):
    """Quota collaborator owned by the billing side of the application."""

    @abstractmethod
    async def get_subscription(self, tenant_id: str, addon: str) -> AddonSubscription | None:
        """Current subscription for the add-on, or None."""

    @abstractmethod
    async def consume(self, tenant_id: str, addon: str, units: int = 1) -> None:
        """Deduct units from the subscription."""

    async def check(self, tenant_id: str, addon: str) -> AddonSubscription:
        """Return the usable subscription.

        Raises:
            EntitlementError: Missing, inactive, expired or exhausted.
        """
        sub = await self.get_subscription(tenant_id, addon)
        if sub is None or sub.status not in _USABLE_STATUSES:
            raise EntitlementError(addon, tenant_id, "add-on is not active")
        expires_at = sub.expires_at
        if expires_at is not None and expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if expires_at is not None and expires_at < datetime.now(timezone.utc):
            raise EntitlementError(addon, tenant_id, "subscription expired")
        if sub.usage_remaining < 1:
            raise EntitlementError(addon, tenant_id, "usage quota exhausted")
        return sub


class InMemoryEntitlementService(BaseEntitlementService):
    """Dict-backed subscriptions for tests and local runs."""

    def __init__(self, subscriptions: list[AddonSubscription] | None = None) -> None:
        self._subs: dict[tuple[str, str], AddonSubscription] = {}
        self._lock = threading.Lock()
        for sub in subscriptions or []:
            self.grant(sub)

    def grant(self, subscription: AddonSubscription) -> None:
        with self._lock:
            self._subs[(subscription.tenant_id, subscription.addon)] = subscription

    async def get_subscription(self, tenant_id: str, addon: str) -> AddonSubscription | None:
        with self._lock:
            return self._subs.get((tenant_id, addon))

    async def consume(self, tenant_id: str, addon: str, units: int = 1) -> None:
        with self._lock:
            sub = self._subs.get((tenant_id, addon))
            if sub is None:
                logger.warning("No subscription to consume for %s/%s", tenant_id, addon)
                return
            self._subs[(tenant_id, addon)] = sub.model_copy(
                update={"usage_remaining": max(0, sub.usage_remaining - units)}
            )
