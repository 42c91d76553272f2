"""Error handling, user message translation and middleware."""
