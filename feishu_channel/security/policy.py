"""DM / group policy decisions.

A decision is a pure function of the policy kind, its allowlist and the
candidate identity.
"""

from __future__ import annotations

from collections.abc import Iterable

from feishu_channel.types import WILDCARD, DmPolicy, GroupPolicy

_DENY = (DmPolicy.DENY, GroupPolicy.DENY)
_OPEN = (DmPolicy.OPEN, GroupPolicy.OPEN)


def decide(policy: DmPolicy | GroupPolicy, allowlist: Iterable[str], identity: str) -> bool:
    if not identity:
        return False
    if policy in _DENY:
        return False
    if policy in _OPEN:
        return True
    # pairing / allowlist: exact, case-sensitive match only
    return any(entry == WILDCARD or entry == identity for entry in allowlist)
