"""Vault Sentry: sector access control, lockdown and honeypot incident response."""

from vault_sentry.client import VaultClient

__all__ = ["VaultClient"]
__version__ = "0.1.0"
