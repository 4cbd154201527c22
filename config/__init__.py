"""Settings for the Kodi notifier."""
