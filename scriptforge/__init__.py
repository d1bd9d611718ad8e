"""ScriptForge AI API service."""
