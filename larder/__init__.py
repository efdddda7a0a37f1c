"""larder: local-first tenant data cache.

One tenant's operational data (profile, rewards, campaigns, customers) is
resident on a device at a time; other tenants are parked in archives.
Login reconciliation and the sync engine keep the resident copy consistent
with the remote store of record.
"""

__version__ = "0.1.0"
