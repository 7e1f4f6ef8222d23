"""Allowlist-based security guard."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from feishu_channel.security.policy import decide
from feishu_channel.types import DmPolicy, GroupPolicy

if TYPE_CHECKING:
    from feishu_channel.config import FeishuConfig


@dataclass(frozen=True)
class SecurityGuard:
    """Decides whether a sender may reach the application.

    Frozen after construction, so one instance can be shared by every
    filter evaluation without synchronization.
    """

    dm_allowlist: tuple[str, ...] = ()
    dm_policy: DmPolicy = DmPolicy.DENY
    group_allowlist: tuple[str, ...] = ()
    group_policy: GroupPolicy = GroupPolicy.OPEN

    @classmethod
    def from_allowlist(cls, allowed_users: Iterable[str]) -> SecurityGuard:
        """Legacy form: DM policy derived from the list, groups open."""
        return cls.with_policies(allowed_users)

    @classmethod
    def with_policies(
        cls,
        dm_allowlist: Iterable[str],
        dm_policy: DmPolicy | None = None,
        group_allowlist: Iterable[str] = (),
        group_policy: GroupPolicy | None = None,
    ) -> SecurityGuard:
        dm = tuple(dm_allowlist)
        return cls(
            dm_allowlist=dm,
            dm_policy=dm_policy if dm_policy is not None else DmPolicy.from_allowlist(dm),
            group_allowlist=tuple(group_allowlist),
            group_policy=group_policy if group_policy is not None else GroupPolicy.OPEN,
        )

    @classmethod
    def from_config(cls, config: FeishuConfig) -> SecurityGuard:
        return cls.with_policies(
            config.dm_allowlist(),
            config.effective_dm_policy(),
            config.group_allow_from,
            config.effective_group_policy(),
        )

    def is_dm_allowed(self, user_id: str) -> bool:
        return decide(self.dm_policy, self.dm_allowlist, user_id)

    def is_group_allowed(self, user_id: str) -> bool:
        return decide(self.group_policy, self.group_allowlist, user_id)

    def is_user_allowed(self, user_id: str) -> bool:
        return self.is_dm_allowed(user_id)

    def is_any_allowed(self, identities: Iterable[str]) -> bool:
        return any(self.is_dm_allowed(i) for i in identities)
