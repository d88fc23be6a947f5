"""Repositories Package - JSON-backed persistence."""
from netpulse.repositories.named_ap_repository import NamedAPRepository

__all__ = ["NamedAPRepository"]
