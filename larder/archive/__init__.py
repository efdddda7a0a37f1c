"""Tenant archives: park inactive tenants on the device."""

from larder.archive.manager import ArchiveManager

__all__ = ["ArchiveManager"]
