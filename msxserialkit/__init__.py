"""Serial-line BBS terminal, telnet negotiation and X/YMODEM file reception."""

__version__ = "0.1.0"