"""Customer aggregate: identity checks, merge, cascading removal and import."""
