"""Custom exceptions for the Quoteflow application."""

class QuoteflowError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="Une erreur interne est survenue", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['success'] = False
        rv['error'] = self.message
        rv['status'] = 'error'
        return rv

class BusinessLogicError(QuoteflowError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)

class ValidationError(BusinessLogicError):
    """Raised when input is missing a required identifier or carries an invalid value."""
    def __init__(self, message, field=None):
        payload = {'field': field} if field else None
        super().__init__(message, status_code=400, payload=payload)

class InvalidTransitionError(BusinessLogicError):
    """Raised when a quote cannot move from its current status to the requested one."""
    def __init__(self, current_status, target_status, message=None):
        message = message or f"Transition impossible : {current_status} -> {target_status}"
        super().__init__(message, status_code=400, payload={
            'current_status': current_status,
            'target_status': target_status,
        })

class NotFoundError(QuoteflowError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Ressource introuvable", payload=None):
        super().__init__(message, 404, payload)

class UnauthorizedError(QuoteflowError):
    """Raised when the request carries no authenticated user."""
    def __init__(self, message="Accès non autorisé"):
        super().__init__(message, 401)
