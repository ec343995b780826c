"""Maven Central search, resolution and POM descriptor handling."""
