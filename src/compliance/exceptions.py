"""Typed failures raised by the compliance core and service layer."""


class ComplianceError(Exception):
    """Base class for all compliance domain errors."""
    kind = "ComplianceError"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RouteNotFound(ComplianceError):
    kind = "RouteNotFound"
    status_code = 404

    def __init__(self, route_id: str, year=None):
        self.route_id = route_id
        self.year = year
        if year is None:
            message = f"Route {route_id} not found"
        else:
            message = f"Route {route_id} not found for year {year}"
        super().__init__(message)


class NegativeBalanceError(ComplianceError):
    """Raised when banking is attempted without a positive raw balance."""
    kind = "NegativeBalanceError"

    def __init__(self, route_id: str, cb):
        self.route_id = route_id
        self.cb = cb
        super().__init__(
            f"Cannot bank non-positive compliance balance for route {route_id} (CB={cb})"
        )


class InsufficientMembers(ComplianceError):
    kind = "InsufficientMembers"

    def __init__(self, count: int):
        self.count = count
        super().__init__(f"A pool needs at least 2 routes, got {count}")


class InvalidAmountError(ComplianceError):
    kind = "InvalidAmountError"


class InsufficientBankedError(ComplianceError):
    kind = "InsufficientBankedError"

    def __init__(self, route_id: str, requested, available):
        self.route_id = route_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Cannot apply {requested} gCO2eq to route {route_id}: only {available} banked"
        )


class PoolNotFound(ComplianceError):
    kind = "PoolNotFound"
    status_code = 404

    def __init__(self, pool_id: int):
        self.pool_id = pool_id
        super().__init__(f"Pool {pool_id} not found")


class BaselineNotSet(ComplianceError):
    kind = "BaselineNotSet"
    status_code = 404

    def __init__(self, year: int):
        self.year = year
        super().__init__(f"No baseline route set for year {year}")
