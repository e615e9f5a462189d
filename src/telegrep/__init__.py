"""Follow a syslog file and forward matching lines to Telegram."""

__version__ = "0.1.0"
