"""Shared utility helpers used across services and routers."""
