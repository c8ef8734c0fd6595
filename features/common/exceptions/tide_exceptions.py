class TideServiceError(Exception):
    """Base exception for tide and station directory errors."""
    pass

class NetworkError(TideServiceError):
    """Raised when the remote source cannot be reached or times out."""
    pass

class DataUnavailable(TideServiceError):
    """Raised when a well-formed response carries no usable records."""
    pass

class InvalidSelection(TideServiceError):
    """Raised when a station selection lacks a valid id or coordinates."""
    pass

class CacheCorrupt(TideServiceError):
    """Raised when persisted bytes fail to decode."""
    pass
