"""Treasury-vault ledger: vault accounting and USD valuation."""

__version__ = "0.1.0"
