"""API routes"""

from syncbridge.api import sync, user_mappings, webhooks

__all__ = ["webhooks", "sync", "user_mappings"]
