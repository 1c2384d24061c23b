class DomainException(Exception):
    pass


class ValidationError(DomainException):
    pass


class NotFoundError(DomainException):
    pass


class OrderNotFoundError(NotFoundError):
    pass


class ConflictError(DomainException):
    pass


class NotificationServiceError(DomainException):
    pass


class InvalidStateTransitionError(DomainException):
    def __init__(self, action: str, current_status):
        self.action = action
        self.current_status = current_status
        super().__init__(f"Order cannot be {action} in current status")
