"""Poller module."""

from .poll_loop import EventHandler, IPollLoop, PollLoop

__all__ = ["EventHandler", "IPollLoop", "PollLoop"]
