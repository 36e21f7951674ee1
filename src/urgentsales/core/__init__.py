"""Platform-agnostic listing logic. Nothing here imports adapter or transport code."""
