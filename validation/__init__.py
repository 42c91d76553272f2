"""Image format detection strategies and the validation orchestrator."""
