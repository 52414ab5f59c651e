"""
Service-level exceptions
Routers translate these into HTTP status codes
"""


class JewelcraftError(Exception):
    """Base class for service errors"""


class ConfigurationError(JewelcraftError):
    """A required external service is not configured"""


class GenerationError(JewelcraftError):
    """Image or specification generation produced no usable result"""


class StorageError(JewelcraftError):
    """Supabase storage or table operation failed"""
