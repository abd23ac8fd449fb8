"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class RateProviderError(DomainException):
    """A market rate provider is unconfigured, unreachable, or returned bad data"""

    pass


class RatesUnavailableError(DomainException):
    """No market rate snapshot has been persisted yet"""

    pass


class ProductNotFoundError(DomainException):
    """Referenced product does not exist"""

    pass


class AccountNotFoundError(DomainException):
    """Gullak account does not exist"""

    pass


class AutopayDisabledError(DomainException):
    """Autopay was requested for an account that has it switched off"""

    pass


class InvalidAccountStateError(DomainException):
    """Operation is not allowed in the account's current status"""

    pass
