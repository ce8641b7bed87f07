"""Case progression engine for investigation games."""
