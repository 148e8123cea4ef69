"""Market data I/O: provider clients, caching, routing and orchestration."""
