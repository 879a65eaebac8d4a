"""Feature modules: each owns one slice of the economy rules."""
