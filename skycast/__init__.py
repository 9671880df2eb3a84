"""SkyCast: cached weather lookups, forecast summaries and saved cities."""
