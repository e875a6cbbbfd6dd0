"""TELNET protocol state tracker and GDB remote-protocol client."""

__version__ = "0.1.0"
__all__ = ["protocol", "negotiation", "subneg", "telnet", "gdbremote"]