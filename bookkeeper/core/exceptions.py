class BookkeeperException(Exception):
    """Base exception for the bookkeeper access core"""

    pass


class UnauthorizedException(BookkeeperException):
    """Raised when JWT validation fails or no identity is present"""

    pass


class NotFoundException(BookkeeperException):
    """Raised when resource not found"""

    pass


class ForbiddenException(BookkeeperException):
    """Raised when the role lattice denies the requested action"""

    pass


class ValidationException(BookkeeperException):
    """Raised for business logic validation errors"""

    pass


class ConflictException(BookkeeperException):
    """Raised for duplicates and already-consumed resources"""

    pass


class GoneException(BookkeeperException):
    """Raised when a resource existed but is no longer usable (expired)"""

    pass


class InternalException(BookkeeperException):
    """
    Raised for unexpected storage or code-generation failures.

    The message is logged server-side only; clients receive a generic error.
    """

    pass
