"""Domain layer: allocator aggregate, events, exceptions and interfaces."""
