class AppError(Exception):
    """Base app error."""


class ValidationError(AppError):
    pass


class NotFoundError(AppError):
    pass


class PeriodClosedError(AppError):
    pass


class CostCycleError(AppError):
    pass


class ImportFormatError(AppError):
    pass


class RemoteUnavailableError(AppError):
    pass
