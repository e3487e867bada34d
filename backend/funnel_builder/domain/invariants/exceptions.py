class InvariantViolation(Exception):
    """Raised when a funnel breaks a domain rule the boundary must refuse."""
