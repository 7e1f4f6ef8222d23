"""Feishu / Lark channel adapter with a capability microkernel."""

__version__ = "0.1.0"
