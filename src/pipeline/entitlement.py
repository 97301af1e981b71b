# src/pipeline/entitlement.py — v1
"""Entitlement resolver: which partners may process an asset.

Decisions are computed once, before any branch starts, and cover every
known partner with exactly one boolean.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping

from syndication.core.errors import ValidationError
from syndication.core.models import Asset, EntitlementDecision

logger = logging.getLogger(__name__)

# Per-asset override: returns partner id -> entitled, or None to abstain.
EntitlementRule = Callable[[Asset], Mapping[str, bool] | None]


class BaseEntitlementResolver(ABC):
    """Decide partner eligibility for an asset. Pure, synchronous."""

    @property
    @abstractmethod
    def partner_ids(self) -> list[str]:
        """Known partner ids, in declared order."""

    @abstractmethod
    def resolve(self, asset: Asset) -> EntitlementDecision:
        """Return exactly one boolean per known partner.

        Raises:
            ValidationError: If the asset has no AssetId.
        """


class StaticEntitlementResolver(BaseEntitlementResolver):
    """Static policy, optionally refined by per-asset rules.

    Rules run in order after the policy; a later rule overrides an earlier
    one. Partners missing from the policy default to not entitled.
    """

    def __init__(
        self,
        policy: Mapping[str, bool],
        partner_ids: list[str],
        rules: list[EntitlementRule] | None = None,
    ) -> None:
        self._policy = dict(policy)
        self._partner_ids = list(partner_ids)
        self._rules = list(rules or [])

    @property
    def partner_ids(self) -> list[str]:
        return list(self._partner_ids)

    def resolve(self, asset: Asset) -> EntitlementDecision:
        if not asset.asset_id:
            raise ValidationError("Asset has no AssetId")

        decision = {pid: bool(self._policy.get(pid, False)) for pid in self._partner_ids}
        for rule in self._rules:
            overrides = rule(asset) or {}
            for pid, entitled in overrides.items():
                if pid in decision:
                    decision[pid] = bool(entitled)
                else:
                    logger.debug("Entitlement rule names unknown partner %s", pid)

        logger.info("Entitlement for %s: %s", asset.asset_id, decision)
        return decision


def attribute_rule(
    partner_id: str, attribute: str, allowed: set[str]
) -> EntitlementRule:
    """Entitle ``partner_id`` only when ``asset.attributes[attribute]`` is allowed.

    Example: ``attribute_rule("ACE", "Territory", {"US", "CA"})``.
    """

    def _rule(asset: Asset) -> Mapping[str, bool]:
        return {partner_id: str(asset.attributes.get(attribute, "")) in allowed}

    return _rule
