"""Mod discovery, records, activation and conflict detection."""
