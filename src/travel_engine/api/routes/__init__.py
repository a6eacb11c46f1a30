"""Route group exports."""

from . import clients, health, trips

__all__ = ["trips", "health", "clients"]
