"""Client lookup helpers."""

from .nearby import NearbyClient, nearby_clients

__all__ = ["NearbyClient", "nearby_clients"]
