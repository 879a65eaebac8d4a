"""Infrastructure shared by every module: config, logging, events, clock."""
