"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class LedgerWriteError(DomainException):
    """Ledger store refused or failed to record a transaction"""

    pass


class InvalidLoanTermsError(DomainException):
    """Loan parameters violate principal/rate/term constraints"""

    pass


class SchemaMigrationError(DomainException):
    """Persisted record matches no known schema version"""

    pass
