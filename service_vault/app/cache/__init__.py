"""
Cache package for the Vault Service.

NamedResourceCache keeps one in-memory entry per resource name for the life
of the owning service; each service is handed its own instance.
"""

from .named_resource_cache import NamedResourceCache
