class RewardsError(Exception):
    code = "error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": {"code": self.code, "message": self.message}}


class ValidationError(RewardsError):
    code = "validation_error"
    status_code = 400


class ConflictError(RewardsError):
    code = "conflict"
    status_code = 409


class NotFoundError(RewardsError):
    code = "not_found"
    status_code = 404


class UnauthenticatedError(RewardsError):
    code = "unauthenticated"
    status_code = 401


class ForbiddenError(RewardsError):
    code = "forbidden"
    status_code = 403


class InsufficientFundsError(RewardsError):
    code = "insufficient_funds"
    status_code = 400


class InternalError(RewardsError):
    code = "internal_error"
    status_code = 500
