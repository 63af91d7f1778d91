"""dappstore — a registry for dApp listings with per-user 1-5 ratings."""

__version__ = "0.1.0"
