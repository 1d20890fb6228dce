"""Client module - REST client, sync service and optimistic state."""
