"""Statistics and run-end exports."""
