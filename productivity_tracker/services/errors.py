"""Common error handling for all services"""

class ServiceError(Exception):
    """Base exception for all service errors"""
    pass

class DatabaseError(ServiceError):
    """Base exception for database-related errors"""
    pass

class DatabaseConnectionError(DatabaseError):
    """Exception raised when database connection fails"""
    pass

class QueryError(DatabaseError):
    """Exception raised when a database query fails"""
    pass

class TrackingError(ServiceError):
    """Base exception for session tracking errors"""
    pass

class ConfigError(ServiceError):
    """Base exception for configuration errors"""
    pass
