"""Server — protocol frontend and task pool for concurrent tool calls."""
