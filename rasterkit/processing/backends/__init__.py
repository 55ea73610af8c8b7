"""Backend implementations of the rasterkit operations, grouped by concern."""
