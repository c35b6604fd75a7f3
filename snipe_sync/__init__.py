"""Snipe-IT accessory inventory synchronization driven by Jira webhooks."""

__version__ = "1.0.0"
