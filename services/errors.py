"""
Service-layer exceptions.

Blueprints never catch these individually: the error handler registered in
``app.register_error_handlers`` turns them into JSON responses using
``status_code``.
"""


class BudgetError(Exception):
    """Base class for expected, user-facing failures."""
    status_code = 400

    def __init__(self, message, fields=None):
        super().__init__(message)
        self.message = message
        self.fields = fields or {}

    def to_dict(self):
        data = {'error': self.message}
        if self.fields:
            data['fields'] = self.fields
        return data


class ValidationError(BudgetError):
    """Input rejected before any write happened."""
    status_code = 400


class NotFoundError(BudgetError):
    status_code = 404


class PaymentStateError(BudgetError):
    """Payment transition not allowed from the current state."""
    status_code = 409
