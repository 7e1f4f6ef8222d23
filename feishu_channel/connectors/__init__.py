"""Driven ports and their Feishu platform adapters."""
