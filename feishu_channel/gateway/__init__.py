"""Channel surface: listeners, filtering, and the channel service."""
