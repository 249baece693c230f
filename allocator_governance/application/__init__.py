"""Application layer: command bus, command handlers and the approval poller."""
