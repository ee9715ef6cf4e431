class AppError(Exception):
    status_code = 500
    code = "APP_ERROR"
    default_message = "Something went wrong on our end. Please try again."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"
    default_message = "Request conflicts with the current state"


class UnitNotAvailableError(ConflictError):
    code = "UNIT_NOT_AVAILABLE"
    default_message = "Unit is not available for rent"


class ActiveTenancyExistsError(ConflictError):
    code = "TENANCY_ALREADY_ACTIVE"
    default_message = "Unit already has an active tenancy"


class TenancyAlreadyEndedError(ConflictError):
    code = "TENANCY_ALREADY_ENDED"
    default_message = "Tenancy has already ended"


class PaymentAlreadyPaidError(ConflictError):
    code = "PAYMENT_ALREADY_PAID"
    default_message = "Payment is already marked as paid"


class InvalidInputError(AppError):
    status_code = 400
    code = "INVALID_INPUT"
    default_message = "Invalid input data"


class InvalidDateRangeError(InvalidInputError):
    code = "INVALID_DATE_RANGE"
    default_message = "End date must be after start date"


class ForbiddenError(AppError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "You do not have permission to perform this action"


class GatewayNotConfiguredError(AppError):
    status_code = 503
    code = "GATEWAY_NOT_CONFIGURED"
    default_message = (
        "Tahseeel payment gateway is not configured. Please set valid "
        "TAHSEEEL_UID, TAHSEEEL_PWD, and TAHSEEEL_SECRET."
    )


class GatewayError(AppError):
    status_code = 502
    code = "GATEWAY_ERROR"
    default_message = "Payment gateway error"
