"""Reactor-style TCP networking: event loops, channels, timers, buffers and a TCP server."""

__version__ = "0.1.0"