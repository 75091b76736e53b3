"""Offline-first sync client mirroring the MediControl API."""
