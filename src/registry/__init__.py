"""Package index and repository access."""
