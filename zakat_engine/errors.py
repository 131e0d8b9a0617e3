"""Exceptions raised by the zakat engine."""


class ZakatEngineError(Exception):
    """Base exception for engine errors."""
    pass


class RateUnavailable(ZakatEngineError):
    """A currency needed for a conversion is missing from the rate table."""

    def __init__(self, currency: str, message: str | None = None):
        self.currency = currency
        super().__init__(message or f"No exchange rate available for '{currency}'")


class UnknownRecipientCategory(ZakatEngineError):
    """Category id is not one of the eight asnaf categories."""

    def __init__(self, category_id: str):
        self.category_id = category_id
        super().__init__(f"Unknown recipient category: {category_id}")


class InvalidPolicy(ZakatEngineError):
    """Nisab basis, eligibility policy or scholar table is not usable."""
    pass
