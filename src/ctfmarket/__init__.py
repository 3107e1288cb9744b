"""ctfmarket - binary prediction markets on a conditional-token position ledger."""

__version__ = "0.1.0"
