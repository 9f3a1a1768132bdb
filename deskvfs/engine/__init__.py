"""deskvfs engine plumbing: configuration, errors, logging."""
