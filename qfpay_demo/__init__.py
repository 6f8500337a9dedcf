"""QFPay demo backend: request signing and gateway calls for the QFPay open API."""

__version__ = "0.1.0"
