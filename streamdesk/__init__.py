"""StreamDesk: WhatsApp account-status bot for streaming subscriptions."""

__version__ = "0.1.0"
