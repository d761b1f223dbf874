"""HTTP client for the task backend."""
